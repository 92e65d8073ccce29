"""Webhook HTTP server."""
