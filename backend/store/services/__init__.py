# Services package
#
# Catalog services for the jewelry store backend.
#
# Module structure:
# - product_service.py: catalog use cases (main API)
# - product_repository.py: storage (MongoDB or in-memory)
# - product_filters.py: catalog query building
# - pricing.py: discount validity and final price
# - enrichment.py: derived fields attached to every product response
# - validators.py: request validation for the HTTP layer

from .product_service import ProductService
from .product_repository import InMemoryProductRepository, MongoProductRepository
from . import enrichment
from . import pricing
from . import product_filters

__all__ = [
    'ProductService',
    'InMemoryProductRepository',
    'MongoProductRepository',
    'enrichment',
    'pricing',
    'product_filters',
]
