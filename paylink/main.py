from contextlib import asynccontextmanager

import stripe
import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from paylink.billing import BillingInfoExtractor
from paylink.config import get_settings
from paylink.database import get_session, init_db
from paylink.errors import PaymentLinkError, payment_link_error_handler
from paylink.logging_config import configure_logging
from paylink.routes import get_gateway, router
from paylink.store import IntentStore
from paylink.stripe_service import StripeGateway, field
from paylink.webhooks import WebhookProcessor

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    yield


app = FastAPI(title="Payment Link Checkout Service", lifespan=lifespan)

app.include_router(router)
app.add_exception_handler(PaymentLinkError, payment_link_error_handler)


@app.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    session: AsyncSession = Depends(get_session),
    gateway: StripeGateway = Depends(get_gateway),
):
    payload = await request.body()

    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Webhook signature missing")

    webhook_secret = get_settings().stripe_webhook_secret
    if not webhook_secret:
        logger.error("webhook_secret_missing")
        raise HTTPException(status_code=500, detail="Stripe webhook secret not configured")

    try:
        event = stripe.Webhook.construct_event(
            payload,
            stripe_signature,
            webhook_secret
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        raise HTTPException(status_code=400, detail="Invalid signature")

    logger.info("webhook_received", event_id=field(event, "id"), event_type=field(event, "type"))

    # Errors propagate: a non-2xx answer makes the gateway redeliver
    processor = WebhookProcessor(IntentStore(session), BillingInfoExtractor(gateway))
    await processor.process(event)

    return {"ok": True}
