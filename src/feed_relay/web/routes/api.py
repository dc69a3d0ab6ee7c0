# ABOUTME: API routes for the external scheduling trigger.
# ABOUTME: Endpoints for running an update sweep, listing subscriptions and health check.

import structlog
from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from pydantic import BaseModel

from feed_relay.engine import FeedRelay
from feed_relay.exceptions import StoreError
from feed_relay.models import Subscription
from feed_relay.web.middleware.token import TriggerVerified

router = APIRouter(prefix="/api", tags=["api"])
log = structlog.get_logger()


class TaskResponse(BaseModel):
    """Response model for async tasks."""

    status: str
    message: str


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str
    version: str = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint for load balancer."""
    return HealthResponse(status="healthy")


def _run_sweep(relay: FeedRelay) -> None:
    """Run one update sweep in background."""
    log.info("api_run_start")
    try:
        summary = relay.scheduler.run_once()
        log.info("api_run_complete", skipped=summary.skipped, sent=summary.notifications_sent)
    except Exception:
        log.exception("api_run_failed")


@router.post("/run", response_model=TaskResponse)
async def api_run(
    request: Request,
    background_tasks: BackgroundTasks,
    _verified: TriggerVerified,
):
    """Trigger one update sweep.

    Called by the external scheduler on a fixed cadence. Overlapping
    triggers are absorbed by the scheduler's run lock.
    """
    log.info("api_run_triggered")
    background_tasks.add_task(_run_sweep, request.app.state.relay)

    return TaskResponse(status="accepted", message="Update sweep started")


class SubscriptionsResponse(BaseModel):
    """Response model for a subscriber's subscriptions."""

    subscriber_id: str
    subscriptions: list[Subscription]


@router.get("/subscribers/{subscriber_id}/subscriptions", response_model=SubscriptionsResponse)
def api_list_subscriptions(
    subscriber_id: str,
    request: Request,
    _verified: TriggerVerified,
):
    """List a subscriber's subscriptions from the read-through cache."""
    relay: FeedRelay = request.app.state.relay
    try:
        subscriptions = relay.subscriptions.list_subscriptions(subscriber_id)
    except StoreError as e:
        log.error("api_list_subscriptions_failed", subscriber_id=subscriber_id, error=str(e))
        raise HTTPException(status_code=503, detail="Subscription store unavailable") from e

    return SubscriptionsResponse(subscriber_id=subscriber_id, subscriptions=subscriptions)
