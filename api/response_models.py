"""
Shared Pydantic response models for API endpoints.

These give FastAPI the type information it needs for accurate OpenAPI
schemas instead of empty `schema: {}`.
"""

from typing import Any

from pydantic import BaseModel, Field

# ==== List Envelope ====
# Shape: {items, total}


class ListResponse(BaseModel):
    """Standard list endpoint response."""

    items: list[Any] = Field(default_factory=list, description="Result items")
    total: int = Field(description="Total count")


# ==== Detail / Single-Item Responses ====


class DetailResponse(BaseModel):
    """Single record — shape varies per record kind."""

    model_config = {"extra": "allow"}


# ==== Mutation Result ====


class MutationResponse(BaseModel):
    """Standard mutation result."""

    success: bool = Field(description="Whether the operation succeeded")

    model_config = {"extra": "allow"}


# ==== Withdrawal ====


class WithdrawalResponse(BaseModel):
    """Withdrawal calculator result."""

    treatment_end_date: str = Field(description="ISO date the treatment ended")
    withdrawal_days: int = Field(ge=0, description="Withdrawal period in days")
    clearance_date: str = Field(description="ISO date the batch is clear to harvest")
    days_remaining: int = Field(description="Days until clearance; negative once passed")
    cleared: bool = Field(description="True when days_remaining <= 0")
    status: str = Field(description="Human-readable status label")


# ==== Dashboard ====


class ChartPoint(BaseModel):
    label: str
    value: int


class DashboardResponse(BaseModel):
    """Aggregate statistics behind the dashboard page."""

    as_of: str
    counts: dict[str, int]
    active_withdrawals: int
    flagged_treatments: int
    failed_lab_results: int
    treatments_this_month: int
    treatments_last_month: int
    month_change_pct: float | None = None
    usage_by_antimicrobial: list[ChartPoint] = Field(default_factory=list)
    usage_by_month: list[ChartPoint] = Field(default_factory=list)
    upcoming_clearances: list[dict[str, Any]] = Field(default_factory=list)


# ==== Health Check ====


class HealthResponse(BaseModel):
    """Health check result."""

    status: str = Field(description="healthy, degraded or unhealthy")
    timestamp: str = Field(description="ISO timestamp")
    checks: list[dict[str, Any]] = Field(default_factory=list)
