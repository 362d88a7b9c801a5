from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Enum, Integer, Numeric, String

from paylink.database import Base
from paylink.statuses import IntentStatus


def utcnow():
    return datetime.now(timezone.utc)


class PaymentIntent(Base):
    __tablename__ = "payment_intents"

    id = Column(String, primary_key=True, default=lambda: uuid4().hex)
    user_id = Column(String, nullable=False, index=True)           # seller
    product_id = Column(String, nullable=False, index=True)
    slug = Column(String, nullable=False)
    user_unique_name = Column(String, nullable=False)
    gateway_intent_id = Column(String, nullable=False, unique=True, index=True)  # pi_...
    client_secret = Column(String, nullable=False, index=True)     # not unique, see IntentStore
    amount = Column(Integer, nullable=False)                       # minor units
    currency = Column(String, nullable=False)
    payment_method_types = Column(JSON, nullable=True)
    status = Column(
        Enum(IntentStatus, name="intent_status", native_enum=False, length=32),
        nullable=False,
        default=IntentStatus.INITIATED,
    )
    customer_name = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


# Owned by the seller/product side of the platform; read here only.

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    unique_name = Column(String, unique=True, index=True, nullable=False)


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    slug = Column(String, nullable=False)
    name = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)                # major units
    status = Column(String, nullable=False, default="active")      # active | expired | cancelled
    expires_at = Column(DateTime(timezone=True), nullable=True)
