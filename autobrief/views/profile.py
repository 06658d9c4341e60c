"""Schemas for the usage endpoint."""

from pydantic import BaseModel, Field


class UsageResponse(BaseModel):
    briefs_count: int
    briefs_limit: int = Field(..., description="-1 means unlimited")
    unlimited: bool
    remaining: int | None = Field(None, description="None when unlimited")
    exhausted: bool
