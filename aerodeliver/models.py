from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from aerodeliver.database import Base


def utc_now():
    """Returns the current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String)
    role = Column(String, nullable=False)
    avatar = Column(String)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), onupdate=utc_now)

    orders = relationship("Order", back_populates="customer", foreign_keys="Order.customer_id")
    drones = relationship("Drone", back_populates="owner")


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True)
    owner_name = Column(String)
    owner_email = Column(String)
    status = Column(String, default="pending", index=True, nullable=False)
    pickup = Column(String, nullable=False)
    delivery = Column(String, nullable=False)
    eta = Column(String)
    price = Column(Numeric(10, 2), nullable=False)
    item = Column(Text)
    weight = Column(Numeric(6, 2))
    length_cm = Column(Numeric(6, 1))
    width_cm = Column(Numeric(6, 1))
    height_cm = Column(Numeric(6, 1))
    fragile = Column(Boolean, default=False)
    sender_name = Column(String)
    sender_phone = Column(String)
    recipient_name = Column(String)
    recipient_phone = Column(String)
    duration_minutes = Column(Integer, default=30)
    accepted_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utc_now)

    customer = relationship("User", back_populates="orders", foreign_keys=[customer_id])
    owner = relationship("User", foreign_keys=[owner_id])


class OrderDecline(Base):
    __tablename__ = "order_declines"
    __table_args__ = (UniqueConstraint("order_id", "owner_id", name="uq_order_decline"),)

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class Drone(Base):
    __tablename__ = "drones"

    id = Column(String, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    model = Column(String, nullable=False)
    status = Column(String, default="offline", nullable=False)
    battery = Column(Integer, default=100)
    flights = Column(Integer, default=0)
    hours = Column(Float, default=0)
    last_maintenance = Column(Date)
    image = Column(String)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), onupdate=utc_now)

    owner = relationship("User", back_populates="drones")


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    revoked_at = Column(DateTime(timezone=True))
