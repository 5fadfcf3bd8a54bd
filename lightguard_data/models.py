"""Pydantic models for query specifications and dashboard records."""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OrderBy(BaseModel):
    """Single sort directive."""

    model_config = ConfigDict(frozen=True)

    column: str = Field(..., min_length=1, description="Column to sort by")
    ascending: bool = True


class Pagination(BaseModel):
    """Inclusive row window, as PostgREST ``range(start, end)`` expects."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0, description="First row offset (inclusive)")
    end: int = Field(..., ge=0, description="Last row offset (inclusive)")

    @model_validator(mode="after")
    def check_window(self) -> "Pagination":
        """Reject windows whose end comes before their start."""
        if self.end < self.start:
            raise ValueError(f"Pagination end ({self.end}) is before start ({self.start})")
        return self


class QuerySpec(BaseModel):
    """
    Filter, order and pagination bundle for a read.

    Filters are equality constraints combined with AND. Any part left unset
    means no constraint for that part. Two specs with the same content are
    equal, which is what hooks use to decide whether to fetch again.
    """

    model_config = ConfigDict(frozen=True)

    filters: Dict[str, Any] = Field(default_factory=dict)
    order: Optional[OrderBy] = None
    pagination: Optional[Pagination] = None

    @property
    def is_empty(self) -> bool:
        """True when the spec places no constraint at all."""
        return not self.filters and self.order is None and self.pagination is None


ProfileRole = Literal["user", "admin", "super_admin"]


class Profile(BaseModel):
    """Row of the ``profiles`` table used by the user management screen."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: ProfileRole = "user"
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
