"""Webhook ingestion endpoint - enriches Asana events and stores them."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from activity_relay.config import settings
from activity_relay.credentials import CredentialStore
from activity_relay.db import get_session_factory
from activity_relay.dependencies import get_credential_store, get_http_client, verify_api_key
from activity_relay.enrichment import EnrichmentPipeline, NameResolver, NormalizedEvent
from activity_relay.enrichment.resolver import ASANA_API
from activity_relay.errors import parse_asana_error
from activity_relay.models import Event

logger = logging.getLogger(__name__)
router = APIRouter()

HOOK_SECRET_HEADER = "X-Hook-Secret"


def _parse_events(body) -> list:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        events = body.get("events", [])
        if isinstance(events, list):
            return events
    raise HTTPException(400, "Expected a JSON object with an 'events' list")


async def _persist(session_factory: async_sessionmaker[AsyncSession], event: NormalizedEvent) -> None:
    async with session_factory() as session:
        session.add(Event(**event.model_dump()))
        await session.commit()


@router.post("/webhook", tags=["webhooks"])
async def receive_webhook(
    request: Request,
    account_id: int | None = Query(default=None, description="Account whose token enriches events"),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
    store: CredentialStore = Depends(get_credential_store),
):
    """Receive an Asana webhook delivery.

    A request carrying X-Hook-Secret is the registration handshake: the secret
    is echoed back and nothing is processed. Otherwise every event in the batch
    is enriched and stored in order; a failing event is logged and skipped, and
    the batch is still acknowledged.
    """
    secret = request.headers.get(HOOK_SECRET_HEADER)
    if secret:
        logger.info("Webhook handshake received")
        return Response(status_code=200, headers={HOOK_SECRET_HEADER: secret})

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(400, "Request body is not valid JSON")
    events = _parse_events(body)

    pipeline = EnrichmentPipeline(NameResolver(client, store))
    stored = 0
    for raw_event in events:
        try:
            # Re-read each time so a token refreshed by an earlier event is used
            credential = await store.get(account_id)
            normalized = await pipeline.enrich(raw_event, credential)
            await _persist(session_factory, normalized)
            stored += 1
        except Exception:
            logger.exception("Failed to process webhook event: %r", raw_event)

    logger.info("Webhook batch processed: %d/%d events stored", stored, len(events))
    return PlainTextResponse("ok")


class RegisterWebhookRequest(BaseModel):
    resource_gid: str
    target_url: str | None = None
    account_id: int | None = None


class WebhookRegistration(BaseModel):
    gid: str
    resource_gid: str
    target: str
    active: bool | None = None


@router.post(
    "/webhooks/register",
    response_model=WebhookRegistration,
    status_code=201,
    tags=["webhooks"],
    dependencies=[Depends(verify_api_key)],
)
async def register_webhook(
    req: RegisterWebhookRequest,
    client: httpx.AsyncClient = Depends(get_http_client),
    store: CredentialStore = Depends(get_credential_store),
):
    """Register POST /webhook as an Asana webhook target for a resource."""
    target = req.target_url or settings.webhook_target_url
    if not target:
        raise HTTPException(400, "No webhook target URL given or configured")
    if req.account_id is not None:
        target = str(httpx.URL(target).copy_merge_params({"account_id": req.account_id}))

    credential = await store.get(req.account_id)
    token = credential.access_token or settings.asana_pat
    if not token:
        raise HTTPException(503, "No Asana token configured")

    try:
        response = await client.post(
            f"{ASANA_API}/webhooks",
            json={"data": {"resource": req.resource_gid, "target": target}},
            headers={"Authorization": f"Bearer {token}"},
        )
    except httpx.HTTPError as e:
        raise HTTPException(502, f"Asana API unreachable: {e}")

    if response.status_code not in (200, 201):
        raise HTTPException(502, f"Asana API error: {parse_asana_error(response.text)}")

    data = response.json().get("data", {})
    return WebhookRegistration(
        gid=str(data.get("gid", "")),
        resource_gid=req.resource_gid,
        target=data.get("target", target),
        active=data.get("active"),
    )
