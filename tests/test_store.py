from datetime import timedelta

from paylink.models import utcnow
from paylink.statuses import IntentStatus

from factories import add_intent

SHARED_SECRET = "pi_x_secret_dup"


async def test_shared_client_secret_resolves_to_earliest_record(seeded, store):
    now = utcnow()
    await add_intent(seeded, "pi_b", client_secret=SHARED_SECRET, created_at=now)
    await add_intent(seeded, "pi_a", client_secret=SHARED_SECRET, created_at=now - timedelta(hours=1))

    first = await store.get_by_client_secret(SHARED_SECRET)
    again = await store.get_by_client_secret(SHARED_SECRET)

    assert first.gateway_intent_id == "pi_a"
    assert again is first


async def test_shared_client_secret_with_same_timestamp_falls_back_to_id(seeded, store):
    now = utcnow()
    await add_intent(seeded, "pi_late", id="bbbb", client_secret=SHARED_SECRET, created_at=now)
    await add_intent(seeded, "pi_early", id="aaaa", client_secret=SHARED_SECRET, created_at=now)

    found = await store.get_by_client_secret(SHARED_SECRET)

    assert found.id == "aaaa"


async def test_update_status_bumps_updated_at(seeded, store):
    stale = utcnow() - timedelta(minutes=5)
    record = await add_intent(seeded, updated_at=stale)

    await store.update_status(record, IntentStatus.PROCESSING)

    assert record.status is IntentStatus.PROCESSING
    assert record.updated_at > stale


async def test_apply_event_bumps_updated_at(seeded, store):
    stale = utcnow() - timedelta(minutes=5)
    record = await add_intent(seeded, updated_at=stale)

    await store.apply_event(record, customer_email="ada@example.com")

    assert record.status is IntentStatus.INITIATED
    assert record.customer_email == "ada@example.com"
    assert record.updated_at > stale


async def test_get_by_gateway_id(seeded, store):
    await add_intent(seeded, "pi_known")

    assert (await store.get_by_gateway_id("pi_known")).client_secret == "pi_known_secret_abc"
    assert await store.get_by_gateway_id("pi_missing") is None
