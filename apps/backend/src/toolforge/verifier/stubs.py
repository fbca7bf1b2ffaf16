"""Stub HTTP backends injected into a verification sandbox."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StubResponse(BaseModel):
    """A canned response for one ``method path`` pair.

    ``query`` narrows the match to requests carrying exactly these query
    parameters. ``delay_seconds`` simulates a slow upstream.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    method: str = "GET"
    path: str
    query: Optional[dict[str, Any]] = None
    status_code: int = 200
    body: Any = None
    delay_seconds: float = 0.0

    def to_context(self) -> dict[str, Any]:
        """Plain dict consumed by the sandbox runner."""
        return self.model_dump(mode="json")
