"""
Products — catalogue writes, filtered reads and client-side views.
"""

from artisan.products._service import ProductService, search, featured, FEATURED_LIMIT

__all__ = ("ProductService", "search", "featured", "FEATURED_LIMIT")
