"""
Common Schemas

Pagination envelope and the error body shared by both planes.

Every error, from the control plane or the gateway, renders as:

    {"error": {"code": "RATE_LIMITED", "message": "...", "details": {...}}}
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


DataT = TypeVar("DataT")


class BaseSchema(BaseModel):
    """Base for response models built from ORM rows."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class PaginationParams(BaseModel):
    """Page/per_page query parameters (tenant listing)."""

    page: int = Field(default=1, ge=1, description="Page number")
    per_page: int = Field(default=20, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


class PaginationMeta(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int

    @classmethod
    def create(cls, page: int, per_page: int, total: int) -> "PaginationMeta":
        total_pages = (total + per_page - 1) // per_page if per_page > 0 else 0
        return cls(page=page, per_page=per_page, total=total, total_pages=total_pages)

    @classmethod
    def single_page(cls, total: int) -> "PaginationMeta":
        """Meta for a listing returned whole (a tenant's connections)."""
        return cls.create(page=1, per_page=max(total, 1), total=total)


class PaginatedResponse(BaseModel, Generic[DataT]):
    data: list[DataT]
    pagination: PaginationMeta


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable error code, e.g. MODEL_NOT_ALLOWED")
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Body of every non-2xx response produced by HubGate itself."""

    error: ErrorDetail

    @classmethod
    def build(
        cls,
        code: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        return cls(error=ErrorDetail(code=code, message=message, details=details)).model_dump(
            exclude_none=True
        )
