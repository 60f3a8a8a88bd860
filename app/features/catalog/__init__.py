"""Catalog feature: master data and sales collections behind a document-store API."""

from app.features.catalog.models import Product, Sales, Store
from app.features.catalog.store import (
    Collection,
    DocumentStore,
    StoreError,
    StoreErrorKind,
    build_document_stores,
)

__all__ = [
    "Collection",
    "DocumentStore",
    "Product",
    "Sales",
    "Store",
    "StoreError",
    "StoreErrorKind",
    "build_document_stores",
]
