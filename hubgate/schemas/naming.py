"""
Naming Schemas

Request/response models for the naming allocator.
"""

from pydantic import BaseModel, Field

from hubgate.schemas.tenant import TenantContext


class AllocateRequest(TenantContext):
    prefix: str = Field(..., min_length=1, max_length=60)


class AllocateResponse(BaseModel):
    unique_name: str
    suffix: str
    suffix_length: int
    collision_probability_at_10k: float = Field(
        ..., description="Chance of any collision among 10,000 distinct seeds"
    )
