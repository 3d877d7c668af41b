"""Pydantic response models for the health check and webhook endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for the /healthz endpoint."""

    status: str
    version: str
    providers: list[str]


class WebhookResponse(BaseModel):
    """Response model for an accepted webhook."""

    status: str
    events_emitted: int
