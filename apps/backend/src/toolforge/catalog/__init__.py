from .accessor import Catalog, CatalogError, FallbackCatalog, HttpCatalog, InMemoryCatalog
from .definitions import ApiDefinition, ApiParameter

__all__ = [
    "ApiDefinition",
    "ApiParameter",
    "Catalog",
    "CatalogError",
    "FallbackCatalog",
    "HttpCatalog",
    "InMemoryCatalog",
]
