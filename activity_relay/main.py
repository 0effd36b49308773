"""Asana Activity Relay - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from activity_relay.config import settings
from activity_relay.db import init_db
from activity_relay.dependencies import verify_api_key
from activity_relay.routers import events, health, oauth, webhooks
from activity_relay.routers.health import VERSION

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(
    title="Asana Activity Relay",
    description="Enriches Asana webhook events and serves the activity log",
    version=VERSION,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = events.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers (health, webhook delivery and OAuth are public; the rest require API key when API_KEY is set)
app.include_router(health.router)
app.include_router(webhooks.router)
app.include_router(oauth.router, prefix="/oauth", tags=["oauth"])
app.include_router(
    events.router, prefix="/api", tags=["events"], dependencies=[Depends(verify_api_key)]
)
