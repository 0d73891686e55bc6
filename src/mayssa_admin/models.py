"""Database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base
from .tiers import Tier, tier_for
from .timeutils import utcnow


def _new_id() -> str:
    return uuid.uuid4().hex


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PREPARATION = "in_preparation"
    READY = "ready"
    DELIVERED = "delivered"


class DeliveryMode(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class OrderSource(str, Enum):
    SITE = "site"
    WHATSAPP = "whatsapp"
    INSTAGRAM = "instagram"
    SNAPCHAT = "snapchat"


class LoyaltyReason(str, Enum):
    ACCOUNT_CREATED = "account_created"
    INSTAGRAM_FOLLOW = "instagram_follow"
    TIKTOK_FOLLOW = "tiktok_follow"
    ORDER_POINTS = "order_points"
    REVIEW_BONUS = "review_bonus"
    RAMADAN_BONUS = "ramadan_bonus"
    ANNIVERSARY_BONUS = "anniversary_bonus"
    BIRTHDAY_BONUS = "birthday_bonus"
    REWARD_REDEEMED = "reward_redeemed"


class RewardType(str, Enum):
    SURPRISE_MAISON_MAYSSA = "surprise_maison_mayssa"
    REMISE_5E = "remise_5e"
    MINI_BOX = "mini_box"
    BOX_FIDELITE = "box_fidelite"


class StockEntry(Base):
    """Remaining quantity of a tracked catalog item. No row means unlimited."""

    __tablename__ = "stock_entries"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_stock_non_negative"),)

    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    customer_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    delivery_fee: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    distance_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    delivery_mode: Mapped[str] = mapped_column(String(16), nullable=False, default=DeliveryMode.PICKUP.value)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default=OrderSource.SITE.value)
    requested_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    requested_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    client_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reward_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    stock_released: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Bumped by every operator write; edits compare it against the value they read.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    lines: Mapped[list["OrderLine"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.position"
    )

    def quantities(self) -> dict[str, int]:
        """Total quantity per catalog item, size variants folded together."""

        totals: dict[str, int] = {}
        for line in self.lines:
            totals[line.item_id] = totals.get(line.item_id, 0) + line.quantity
        return totals

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Order id={self.id!r} status={self.status} total={self.total}>"


class OrderLine(Base):
    __tablename__ = "order_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    item_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    size_label: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped[Order] = relationship(back_populates="lines")


class CustomerProfile(Base):
    __tablename__ = "customer_profiles"
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_points_non_negative"),
        CheckConstraint("lifetime_points >= 0", name="ck_lifetime_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    birthday: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lifetime_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    history: Mapped[list["LoyaltyEvent"]] = relationship(
        cascade="all, delete-orphan", order_by="LoyaltyEvent.id"
    )
    claims: Mapped[list["LoyaltyClaim"]] = relationship(cascade="all, delete-orphan")
    rewards: Mapped[list["Reward"]] = relationship(cascade="all, delete-orphan", order_by="Reward.claimed_at")

    @property
    def tier(self) -> Tier:
        return tier_for(self.lifetime_points)

    def claimed_at(self, claim_key: str) -> Optional[datetime]:
        for claim in self.claims:
            if claim.claim_key == claim_key:
                return claim.claimed_at
        return None


class LoyaltyEvent(Base):
    """One history entry per balance change."""

    __tablename__ = "loyalty_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customer_profiles.id", ondelete="CASCADE"), index=True)
    reason: Mapped[str] = mapped_column(String(32), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    order_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    reward_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)


class LoyaltyClaim(Base):
    """A one-time grant key, e.g. ``social:instagram`` or ``birthday:2026``."""

    __tablename__ = "loyalty_claims"
    __table_args__ = (UniqueConstraint("customer_id", "claim_key", name="uq_claim_once"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customer_profiles.id", ondelete="CASCADE"), index=True)
    claim_key: Mapped[str] = mapped_column(String(64), nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customer_profiles.id", ondelete="CASCADE"), index=True)
    reward_type: Mapped[str] = mapped_column(String(64), nullable=False)
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    used_in_order_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)


class ShopSettings(Base):
    """Singleton row holding pre-order windows."""

    __tablename__ = "shop_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    preorder_days: Mapped[list] = mapped_column(JSON, nullable=False, default=lambda: [3, 6])
    preorder_openings: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    preorder_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
