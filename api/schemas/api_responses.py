from __future__ import annotations

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

# Error codes the read API can return.
MISSING_PARAMETER = "missing_parameter"
NOT_FOUND = "not_found"
DATASET_UNAVAILABLE = "dataset_unavailable"
DATASET_CORRUPT = "dataset_corrupt"
METHOD_NOT_ALLOWED = "method_not_allowed"
INTERNAL_ERROR = "internal_error"


class ApiError(BaseModel):
    """Error payload: machine-readable `code`, human `message`, optional context."""

    code: str = Field(default="error")
    message: str
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class ApiMeta(BaseModel):
    request_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ApiResponse(BaseModel, Generic[T]):
    """`{ok, data, error, meta}` envelope shared by every JSON endpoint."""

    ok: bool
    data: Optional[T] = None
    error: Optional[ApiError] = None
    meta: ApiMeta = Field(default_factory=ApiMeta)

    model_config = ConfigDict(extra="ignore")


class SearchResult(BaseModel):
    """One ranked hit; lower `score` is a closer match."""

    score: Optional[float] = None
    uid: str
    name: str
    type: Optional[str] = None
    programs: List[str] = Field(default_factory=list)


class SearchData(BaseModel):
    q: str
    count: int
    results: List[SearchResult]


class EntityData(BaseModel):
    # Already in stored JSON form (None-valued optionals omitted).
    entity: Dict[str, Any]


def ok(data: Any = None, *, meta: Optional[ApiMeta] = None) -> Dict[str, Any]:
    """Success envelope as a JSON-serializable dict.

    `data` may be a plain value or one of the payload models above.
    """

    payload = ApiResponse[Any](ok=True, data=data, error=None, meta=meta or ApiMeta())
    return payload.model_dump(mode="json")


def fail(
    message: str,
    *,
    code: str = "error",
    details: Optional[Dict[str, Any]] = None,
    meta: Optional[ApiMeta] = None,
) -> Dict[str, Any]:
    """Error envelope as a JSON-serializable dict; `data` is always null."""

    payload = ApiResponse[None](
        ok=False,
        data=None,
        error=ApiError(code=code, message=message, details=details),
        meta=meta or ApiMeta(),
    )
    return payload.model_dump(mode="json")
