"""
app/schemas/dashboard.py

Response schemas for dashboard endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DashboardResponse(BaseModel):
    """
    Aggregated metrics for one source.

    ``empty_state`` is "no_data" when nothing was ever uploaded,
    "no_matches" when filters excluded every record, otherwise null.
    """

    source: str
    empty_state: str | None = None
    filters_applied: bool = False
    metrics: dict[str, Any] = Field(default_factory=dict)


class DimensionsResponse(BaseModel):
    source: str
    dimensions: dict[str, list[Any]] = Field(default_factory=dict)
