"""
Utils Package
=============
Utility functions and helpers.
"""

from .url_parser import extract_product_id, find_commerce_link

__all__ = ['extract_product_id', 'find_commerce_link']
