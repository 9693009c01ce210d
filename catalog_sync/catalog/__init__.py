"""Catalog storage.

Provides the product set codec, ORM models, entity repositories and
the catalog product repository that keeps the mapping table in sync.
"""

from catalog_sync.catalog.codec import ProductSetCodec, normalize_product_ids
from catalog_sync.catalog.models import Catalog, CatalogProduct, Client, Product
from catalog_sync.catalog.product_repository import CatalogProductRepository
from catalog_sync.catalog.repository import (
    CatalogRepository,
    ClientRepository,
    ProductRepository,
)

__all__ = [
    # Codec
    "ProductSetCodec",
    "normalize_product_ids",
    # Models
    "Catalog",
    "CatalogProduct",
    "Client",
    "Product",
    # Repositories
    "CatalogProductRepository",
    "CatalogRepository",
    "ClientRepository",
    "ProductRepository",
]
