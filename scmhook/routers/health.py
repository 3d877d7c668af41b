"""Health check endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from scmhook.config import VERSION
from scmhook.dependencies import get_registry
from scmhook.schemas.health import HealthResponse
from scmhook.services.providers.registry import ProviderRegistry

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def healthz(registry: Annotated[ProviderRegistry, Depends(get_registry)]) -> HealthResponse:
    """Report liveness and the providers the server accepts webhooks from."""
    return HealthResponse(status="ok", version=VERSION, providers=registry.providers)
