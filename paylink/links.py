"""Payment link parsing and resolution."""
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote, unquote, urlsplit

import structlog

from paylink.errors import BadRequest, NotFound

logger = structlog.get_logger(__name__)

INVALID_LINK_MESSAGE = "Invalid payment link"


@dataclass(frozen=True)
class ResolvedLink:
    seller_id: str
    seller_unique_name: str
    slug: str
    product: object


def parse_payment_link(payment_link: str):
    """Return ``(seller_unique_name, slug)`` from a payment link URL."""
    if not isinstance(payment_link, str) or not payment_link.strip():
        raise BadRequest("Invalid payment link format. Must be a valid URL")

    try:
        parts = urlsplit(payment_link.strip())
    except ValueError:
        raise BadRequest("Invalid payment link format. Must be a valid URL")

    if not parts.scheme or not parts.netloc:
        raise BadRequest("Invalid payment link format. Must be a valid URL")

    segments = parts.path.strip("/").split("/")
    if len(segments) != 2:
        raise BadRequest(
            "Invalid payment link format. Expected: {baseUrl}/{userUniqueName}/{slug}, "
            f"got {len(segments)} parts"
        )

    unique_name, slug = (unquote(segment) for segment in segments)
    if not unique_name or not slug:
        raise BadRequest("Invalid payment link format. User unique name and slug are required")

    return unique_name, slug


def build_payment_link(base_url: str, unique_name: str, slug: str) -> str:
    # Segments are encoded so parse_payment_link gives them back unchanged
    return f"{base_url.rstrip('/')}/{quote(unique_name, safe='')}/{quote(slug, safe='')}"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_product_eligibility(product, now: datetime = None) -> None:
    now = now or datetime.now(timezone.utc)

    # Expiry first: it is the more specific diagnostic
    if product.expires_at is not None and _as_utc(product.expires_at) < now:
        raise BadRequest("Link has expired")

    if product.status == "cancelled":
        raise BadRequest("This product has been cancelled and is no longer available")

    if product.status != "active":
        raise BadRequest(INVALID_LINK_MESSAGE)


async def resolve_payment_link(catalog, payment_link: str) -> ResolvedLink:
    unique_name, slug = parse_payment_link(payment_link)

    seller = await catalog.resolve_user(unique_name)
    if seller is None:
        logger.warning("payment_link_seller_not_found", unique_name=unique_name)
        raise NotFound(INVALID_LINK_MESSAGE)

    product = await catalog.resolve_product(seller.id, slug)
    if product is None:
        logger.warning("payment_link_product_not_found", seller_id=seller.id, slug=slug)
        raise NotFound(INVALID_LINK_MESSAGE)

    check_product_eligibility(product)

    return ResolvedLink(seller_id=seller.id, seller_unique_name=unique_name, slug=slug, product=product)
