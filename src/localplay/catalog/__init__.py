"""Catalog data model and persistence."""

from .errors import EMPTY_CATALOG_GUIDANCE, EmptyCatalogError
from .models import CaptionRef, Collection, Item, Section
from .repository import CatalogRepository

__all__ = [
    "CaptionRef",
    "Collection",
    "Item",
    "Section",
    "CatalogRepository",
    "EmptyCatalogError",
    "EMPTY_CATALOG_GUIDANCE",
]
