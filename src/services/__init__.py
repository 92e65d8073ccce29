"""Service layer: pipeline, cache, rate limiting and link resolution."""
