from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from paylink.actions import IntentActions
from paylink.catalog import SqlCatalog
from paylink.config import get_settings
from paylink.currencies import to_minor_units
from paylink.database import get_session
from paylink.intents import IntentService
from paylink.links import build_payment_link, resolve_payment_link
from paylink.store import IntentStore
from paylink.stripe_service import StripeGateway
from paylink.sync import SyncService

router = APIRouter()


@lru_cache()
def get_gateway() -> StripeGateway:
    settings = get_settings()
    return StripeGateway(settings.stripe_secret_key, settings.stripe_api_version)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class IntentRequest(CamelModel):
    payment_link: str = Field(alias="paymentLink")
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")


class ClientSecretRequest(CamelModel):
    client_secret: str = Field(alias="clientSecret")


class CancelRequest(ClientSecretRequest):
    cancellation_reason: Optional[str] = Field(default=None, alias="cancellationReason")


class MicrodepositsRequest(ClientSecretRequest):
    amounts: list


def intent_payload(intent, status=None):
    settings = get_settings()
    return {
        "gatewayIntentId": intent.gateway_intent_id,
        "clientSecret": intent.client_secret,
        "productId": intent.product_id,
        "amount": intent.amount,
        "currency": intent.currency,
        "status": (status or intent.status).value,
        "paymentLink": build_payment_link(settings.payment_link_base_url, intent.user_unique_name, intent.slug),
    }


@router.post("/payments/intent")
async def create_payment_intent(
    request: IntentRequest,
    session: AsyncSession = Depends(get_session),
    gateway: StripeGateway = Depends(get_gateway),
):
    settings = get_settings()
    service = IntentService(
        IntentStore(session),
        gateway,
        SqlCatalog(session),
        base_url=settings.payment_link_base_url,
        currency=settings.settlement_currency,
    )
    view = await service.create_or_retrieve(request.payment_link.strip(), request.client_secret)

    return {
        "gatewayIntentId": view.gateway_intent_id,
        "clientSecret": view.client_secret,
        "productId": view.product_id,
        "amount": view.amount,
        "currency": view.currency,
        "status": view.status.value,
        "paymentLink": view.payment_link,
        "isExisting": view.is_existing,
    }


@router.post("/payments/intent/sync")
async def sync_payment_intent(
    request: ClientSecretRequest,
    session: AsyncSession = Depends(get_session),
    gateway: StripeGateway = Depends(get_gateway),
):
    result = await SyncService(IntentStore(session), gateway).retrieve_and_sync(request.client_secret)

    return {
        "synced": result.synced,
        "previousStatus": result.previous_status.value,
        "currentStatus": result.current_status.value,
        "message": result.message,
        "intent": intent_payload(result.intent),
    }


@router.post("/payments/intent/cancel")
async def cancel_payment_intent(
    request: CancelRequest,
    session: AsyncSession = Depends(get_session),
    gateway: StripeGateway = Depends(get_gateway),
):
    actions = IntentActions(IntentStore(session), gateway)
    result = await actions.cancel(request.client_secret, request.cancellation_reason)
    return {"message": result.message, **intent_payload(result.intent, result.status)}


@router.post("/payments/intent/verify-microdeposits")
async def verify_microdeposits(
    request: MicrodepositsRequest,
    session: AsyncSession = Depends(get_session),
    gateway: StripeGateway = Depends(get_gateway),
):
    actions = IntentActions(IntentStore(session), gateway)
    result = await actions.verify_microdeposits(request.client_secret, request.amounts)
    return {"message": result.message, **intent_payload(result.intent, result.status)}


@router.get("/products/{unique_name}/{slug}")
async def get_product_by_link(unique_name: str, slug: str, session: AsyncSession = Depends(get_session)):
    settings = get_settings()
    link = build_payment_link(settings.payment_link_base_url, unique_name, slug)
    resolved = await resolve_payment_link(SqlCatalog(session), link)
    product = resolved.product

    return {
        "productId": product.id,
        "name": product.name,
        "amount": to_minor_units(product.amount, settings.settlement_currency),
        "currency": settings.settlement_currency,
        "expiresAt": product.expires_at.isoformat() if product.expires_at else None,
        "paymentLink": link,
    }
