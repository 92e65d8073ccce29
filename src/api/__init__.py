"""
API Package
===========
AliExpress Affiliate API client and request signing.
"""

from .aliexpress import AliExpressClient
from .models import AffiliateLink, ProductDetails
from .signature import build_signed_request, sign

__all__ = [
    'AliExpressClient',
    'AffiliateLink',
    'ProductDetails',
    'build_signed_request',
    'sign',
]
