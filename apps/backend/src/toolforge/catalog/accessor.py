"""Read-only API catalog accessors.

The catalog is populated by an external import process; the compiler only
ever calls ``get(api_id)`` on it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from pydantic import ValidationError

from .definitions import ApiDefinition

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when a remote catalog cannot be read."""


class Catalog(Protocol):
    def get(self, api_id: str) -> ApiDefinition | None: ...


class InMemoryCatalog:
    """Catalog backed by a plain mapping of id -> definition."""

    def __init__(self, definitions: Mapping[str, ApiDefinition | dict[str, Any]] | None = None):
        self._definitions: dict[str, ApiDefinition] = {}
        for api_id, definition in (definitions or {}).items():
            if not isinstance(definition, ApiDefinition):
                definition = ApiDefinition.model_validate({"id": api_id, **definition})
            self._definitions[api_id] = definition

    @classmethod
    def from_definitions(cls, definitions: list[ApiDefinition]) -> InMemoryCatalog:
        return cls({d.id: d for d in definitions})

    def get(self, api_id: str) -> ApiDefinition | None:
        return self._definitions.get(api_id)

    def ids(self) -> list[str]:
        return sorted(self._definitions)


class HttpCatalog:
    """Catalog served by a remote service at ``GET {base_url}/apis/{id}``.

    Uses a synchronous httpx client: the planner fans lookups out over a
    thread pool, so each call blocks only its own worker.
    """

    def __init__(self, base_url: str, http_client: httpx.Client | None = None, timeout: float = 10.0):
        self._owns_client = http_client is None
        self.http = http_client or httpx.Client(base_url=base_url, timeout=timeout)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpCatalog:
        if not settings.catalog_base_url:
            raise CatalogError("catalog_base_url is not configured")
        return cls(settings.catalog_base_url, timeout=settings.catalog_timeout_seconds)

    def get(self, api_id: str) -> ApiDefinition | None:
        try:
            resp = self.http.get(f"{self.base_url}/apis/{api_id}")
        except httpx.HTTPError as e:
            raise CatalogError(f"Catalog lookup for '{api_id}' failed: {e}") from e

        logger.debug("Catalog lookup %s -> %s", api_id, resp.status_code)
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise CatalogError(
                f"Catalog lookup for '{api_id}' failed ({resp.status_code}): {resp.text[:200]}"
            )
        try:
            return ApiDefinition.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise CatalogError(f"Catalog returned an invalid definition for '{api_id}': {e}") from e

    def close(self) -> None:
        if self._owns_client:
            self.http.close()

    def __enter__(self) -> HttpCatalog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class FallbackCatalog:
    """Looks ids up in ``primary`` first, then in ``fallback``."""

    def __init__(self, primary: Catalog, fallback: Catalog):
        self.primary = primary
        self.fallback = fallback

    def get(self, api_id: str) -> ApiDefinition | None:
        definition = self.primary.get(api_id)
        if definition is None:
            definition = self.fallback.get(api_id)
        return definition
