"""Schema for the public GET /health endpoint."""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness payload for load balancers and deploy checks."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "ok", "service": "backoffice-api"}}
    )

    status: str = Field(default="ok", examples=["ok"])
    service: str = Field(default="backoffice-api")
