"""
Core Package
============
Configuration, logging and error taxonomy.
"""

from .config import settings
from .exceptions import (
    BotError,
    ConfigError,
    IncompleteProductError,
    MalformedResponse,
    NotResolvable,
    UpstreamError,
    UpstreamTimeout,
)

__all__ = [
    'settings',
    'BotError',
    'ConfigError',
    'IncompleteProductError',
    'MalformedResponse',
    'NotResolvable',
    'UpstreamError',
    'UpstreamTimeout',
]
