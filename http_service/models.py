from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# === API Schemas ===


class ServiceResponse(BaseModel):
    """Body returned by every route."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    service_name: str = Field(alias="service-name")
    message: str
    hostname: str
