"""Pydantic request/response models for the citypages API.

Field names follow the dashboard's camelCase JSON; the Python side uses
snake_case with aliases.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from citypages.core.types import normalize_neighborhoods


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ResearchRequest(_CamelModel):
    """Request body for POST /research."""

    city_id: str | None = Field(None, alias="cityId", examples=["c1"])
    neighborhoods: list[str] | None = Field(
        None,
        description="Neighborhood pages to generate, in order. Defaults to the configured list.",
        examples=[["Downtown", "Northside"]],
    )

    @field_validator("neighborhoods")
    @classmethod
    def _clean_neighborhoods(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        seen = normalize_neighborhoods(value)
        if not seen:
            raise ValueError("neighborhoods must contain at least one non-empty name")
        return seen


class ResearchStartedResponse(_CamelModel):
    success: bool = True
    job_id: str = Field(..., alias="jobId")
    message: str = "Content generation started"


class JobStatusResponse(_CamelModel):
    id: str
    city_id: str = Field(..., alias="cityId")
    status: str
    progress: int
    current_step: str | None = Field(None, alias="currentStep")
    started_at: str | None = Field(None, alias="startedAt")
    completed_at: str | None = Field(None, alias="completedAt")
    error_message: str | None = Field(None, alias="errorMessage")
    results: dict[str, Any] = {}


class ErrorResponse(BaseModel):
    detail: str
