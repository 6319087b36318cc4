"""Request, response and entity inputs consumed by the activity recorder.

These are framework-neutral; `RequestContext.from_request` adapts a
Starlette/FastAPI request at the HTTP boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from activitylog.schemas.activity import Subject

if TYPE_CHECKING:
    from starlette.requests import Request


class RequestContext(BaseModel):
    """Everything the recorder needs to know about an incoming request."""

    method: str = "GET"
    path: str = "/"
    url: str = ""
    query_params: dict[str, Any] = Field(default_factory=dict)
    user_agent: str | None = None
    referrer: str | None = None
    ip: str | None = None
    subject: Subject | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_request(cls, request: Request, subject: Subject | None = None) -> RequestContext:
        """Build a context from a Starlette request.

        Repeated query keys are collapsed into a list, single ones stay scalar.
        """
        query: dict[str, Any] = {}
        for key, value in request.query_params.multi_items():
            if key in query:
                existing = query[key]
                query[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
            else:
                query[key] = value

        return cls(
            method=request.method,
            path=request.url.path,
            url=str(request.url),
            query_params=query,
            user_agent=request.headers.get("user-agent"),
            referrer=request.headers.get("referer"),
            ip=request.client.host if request.client else None,
            subject=subject,
        )


class ResponseContext(BaseModel):
    """Outcome of the request."""

    status_code: int

    model_config = {"frozen": True}


class EntitySnapshot(BaseModel):
    """State of a mutated record.

    `original` holds the values before the mutation, `changes` the names of
    the fields the persistence layer reported as changed.
    """

    type: str
    id: int | str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    original: dict[str, Any] = Field(default_factory=dict)
    changes: frozenset[str] = Field(default_factory=frozenset)

    model_config = {"frozen": True}

    def old_values(self) -> dict[str, Any]:
        """Prior values of every field in the changed set."""
        return {key: value for key, value in self.original.items() if key in self.changes}
