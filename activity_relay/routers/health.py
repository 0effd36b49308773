from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from activity_relay.config import settings


router = APIRouter(tags=["health"])

VERSION = "0.1.0"

_startup_time = datetime.now(timezone.utc)


class EndpointInfo(BaseModel):
    path: str
    description: str


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    endpoints: list[EndpointInfo]


class IntegrationStatus(BaseModel):
    connected: bool
    status: str
    last_check: str | None = None


class IntegrationsResponse(BaseModel):
    asana_pat: IntegrationStatus
    asana_oauth: IntegrationStatus
    webhook_target: IntegrationStatus


ENDPOINTS = [
    EndpointInfo(path="/health", description="Relay status and API directory"),
    EndpointInfo(path="/health/integrations", description="Asana configuration status"),
    EndpointInfo(path="/webhook", description="Asana webhook delivery target"),
    EndpointInfo(path="/webhooks/register", description="Register a webhook for an Asana resource"),
    EndpointInfo(path="/oauth/login", description="Connect an Asana account"),
    EndpointInfo(path="/api/events", description="Activity log, newest first"),
]


def _configured(ok: bool, missing: str) -> IntegrationStatus:
    if not ok:
        return IntegrationStatus(connected=False, status=missing)
    return IntegrationStatus(
        connected=True,
        status="ok",
        last_check=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check():
    uptime = (datetime.now(timezone.utc) - _startup_time).total_seconds()

    return HealthResponse(
        status="ok",
        version=VERSION,
        uptime_seconds=round(uptime, 2),
        endpoints=ENDPOINTS,
    )


@router.get("/health/integrations", response_model=IntegrationsResponse)
async def get_integrations():
    return IntegrationsResponse(
        asana_pat=_configured(bool(settings.asana_pat), "personal access token not configured"),
        asana_oauth=_configured(
            bool(settings.asana_client_id and settings.asana_client_secret),
            "credentials not configured",
        ),
        webhook_target=_configured(bool(settings.webhook_target_url), "target url not configured"),
    )
