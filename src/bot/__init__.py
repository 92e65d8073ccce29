"""
Bot Package
===========
Telegram bot handlers and error management.
"""

from .handlers import router
from .error_handler import ErrorHandler

__all__ = ['router', 'ErrorHandler']
