"""Stripe webhook endpoint."""

from fastapi import APIRouter, Request, status

from src.api.core.dependencies import AsyncSessionDep
from src.api.core.exceptions.base import ExplorNaturaException
from src.api.core.messages import MessageCode
from src.modules.billing.stripe import StripeGateway
from src.modules.domains.purchase import DomainPurchaseCoordinator
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/stripe", tags=["stripe"])

MAX_WEBHOOK_PAYLOAD_SIZE = 1024 * 1024


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSessionDep,
):
    """Apply extra-domain billing events. Unrelated events are acknowledged and ignored."""
    payload = await request.body()

    if not payload:
        raise ExplorNaturaException(
            MessageCode.BAD_REQUEST,
            status.HTTP_400_BAD_REQUEST,
            details={"description": "Empty webhook payload"},
        )

    if len(payload) > MAX_WEBHOOK_PAYLOAD_SIZE:
        raise ExplorNaturaException(
            MessageCode.BAD_REQUEST,
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            details={"description": "Webhook payload too large"},
        )

    signature = request.headers.get("stripe-signature")
    if not signature:
        raise ExplorNaturaException(
            MessageCode.BAD_REQUEST,
            status.HTTP_400_BAD_REQUEST,
            details={"description": "Missing stripe-signature header"},
        )

    gateway = StripeGateway(db)
    # Raises a 400 for bad signatures and events outside the timestamp tolerance
    event = gateway.construct_event(payload, signature)

    coordinator = DomainPurchaseCoordinator(db, gateway=gateway)
    handled = await coordinator.handle_webhook_event(event)

    if handled:
        logger.info("Processed webhook event", event_type=event["type"])
        return {"status": "success"}

    logger.debug("Webhook event not handled", event_type=event["type"])
    return {"status": "ignored"}
