from types import SimpleNamespace

import pytest
import stripe

from paylink.errors import BadRequest, UpstreamFailure
from paylink.stripe_service import StripeGateway, field, intent_id_from_client_secret

from factories import live_intent


def test_intent_id_from_client_secret():
    assert intent_id_from_client_secret("pi_3Nabc_secret_XyZ") == "pi_3Nabc"


@pytest.mark.parametrize("secret", ["pi_3Nabc", "_secret_XyZ", "cs_123_secret_abc", None])
def test_intent_id_from_malformed_secret(secret):
    with pytest.raises(BadRequest, match="Invalid client secret format"):
        intent_id_from_client_secret(secret)


def test_field_reads_dicts_and_objects():
    assert field({"status": "succeeded"}, "status") == "succeeded"
    assert field(SimpleNamespace(status="processing"), "status") == "processing"
    assert field(None, "status", "missing") == "missing"
    assert field({}, "status") is None


def test_gateway_requires_a_key():
    with pytest.raises(RuntimeError):
        StripeGateway("")


async def test_create_intent_passes_credentials_per_call(mocker):
    create = mocker.patch.object(
        stripe.PaymentIntent, "create_async", new_callable=mocker.AsyncMock, return_value=live_intent()
    )
    gateway = StripeGateway("sk_test_fake", api_version="2024-06-20")

    intent = await gateway.create_intent(
        amount=1999,
        currency="usd",
        description="Widget Pro!",
        statement_descriptor_suffix="WIDGET PRO",
        metadata={"seller_id": "user_acme", "product_id": "prod_widget"},
    )

    assert intent["id"] == "pi_123"
    kwargs = create.await_args.kwargs
    assert kwargs["api_key"] == "sk_test_fake"
    assert kwargs["stripe_version"] == "2024-06-20"
    assert kwargs["statement_descriptor_suffix"] == "WIDGET PRO"
    assert kwargs["automatic_payment_methods"] == {"enabled": True, "allow_redirects": "always"}


async def test_create_intent_omits_empty_descriptor(mocker):
    create = mocker.patch.object(
        stripe.PaymentIntent, "create_async", new_callable=mocker.AsyncMock, return_value=live_intent()
    )

    await StripeGateway("sk_test_fake").create_intent(1999, "usd", "???", "", {})

    assert "statement_descriptor_suffix" not in create.await_args.kwargs
    assert "stripe_version" not in create.await_args.kwargs


async def test_sdk_errors_become_upstream_failures(mocker):
    mocker.patch.object(
        stripe.PaymentIntent,
        "retrieve_async",
        new_callable=mocker.AsyncMock,
        side_effect=stripe.APIConnectionError("connection reset"),
    )

    with pytest.raises(UpstreamFailure) as exc_info:
        await StripeGateway("sk_test_fake").retrieve_intent("pi_123")

    assert exc_info.value.status_code == 502
    assert isinstance(exc_info.value.original_error, stripe.APIConnectionError)


async def test_retrieve_intent_with_expansion(mocker):
    retrieve = mocker.patch.object(
        stripe.PaymentIntent, "retrieve_async", new_callable=mocker.AsyncMock, return_value=live_intent()
    )

    await StripeGateway("sk_test_fake").retrieve_intent("pi_123", expand=["latest_charge"])

    retrieve.assert_awaited_once_with("pi_123", expand=["latest_charge"], api_key="sk_test_fake")


async def test_cancel_and_verify_forward_arguments(mocker):
    cancel = mocker.patch.object(
        stripe.PaymentIntent, "cancel_async", new_callable=mocker.AsyncMock,
        return_value=live_intent(status="canceled"),
    )
    verify = mocker.patch.object(
        stripe.PaymentIntent, "verify_microdeposits_async", new_callable=mocker.AsyncMock,
        return_value=live_intent(status="processing"),
    )
    gateway = StripeGateway("sk_test_fake")

    await gateway.cancel_intent("pi_123", "duplicate")
    await gateway.verify_microdeposits("pi_123", (32, 45))

    cancel.assert_awaited_once_with("pi_123", cancellation_reason="duplicate", api_key="sk_test_fake")
    verify.assert_awaited_once_with("pi_123", amounts=[32, 45], api_key="sk_test_fake")
