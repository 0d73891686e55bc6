"""Pydantic schemas for API payloads."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, field_validator

from .models import DeliveryMode, LoyaltyReason, OrderSource, OrderStatus, RewardType
from .pricing import Coordinates
from .tiers import Tier


class CoordinatesIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_point(self) -> Coordinates:
        return Coordinates(self.lat, self.lng)


class LineIn(BaseModel):
    item_id: str = Field(..., min_length=1, max_length=128)
    quantity: int = Field(..., gt=0)
    size_label: Optional[str] = Field(None, max_length=64)


class CustomerForm(BaseModel):
    """Checkout form as typed by the customer; blanks are reported, not rejected."""

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    address: str = ""
    coordinates: Optional[CoordinatesIn] = None
    delivery_mode: DeliveryMode = DeliveryMode.PICKUP
    date: str = ""
    time: str = ""


class ValidationResult(BaseModel):
    errors: dict[str, str]
    submittable: bool


class QuoteRequest(BaseModel):
    lines: List[LineIn] = Field(default_factory=list)
    delivery_mode: DeliveryMode = DeliveryMode.PICKUP
    coordinates: Optional[CoordinatesIn] = None


class QuoteRead(BaseModel):
    subtotal: float
    delivery_fee: Optional[float]
    eligible: Optional[bool]
    distance_km: Optional[float]
    grand_total: Optional[float]
    negotiate: bool


class OrderCreate(CustomerForm):
    lines: List[LineIn] = Field(..., min_length=1)
    client_note: Optional[str] = Field(None, max_length=2000)
    customer_id: Optional[str] = None
    reward_id: Optional[str] = None


class OffsiteOrderCreate(BaseModel):
    source: OrderSource
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    phone: str = Field(..., min_length=1, max_length=32)
    address: Optional[str] = None
    coordinates: Optional[CoordinatesIn] = None
    delivery_mode: DeliveryMode = DeliveryMode.PICKUP
    requested_date: Optional[str] = None
    requested_time: Optional[str] = None
    admin_note: Optional[str] = Field(None, max_length=2000)
    customer_id: Optional[str] = None
    lines: List[LineIn] = Field(..., min_length=1)

    @field_validator("source")
    @classmethod
    def _not_site(cls, value: OrderSource) -> OrderSource:
        if value is OrderSource.SITE:
            raise ValueError("off-platform orders need a messaging source")
        return value


class OrderPatch(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=128)
    last_name: Optional[str] = Field(None, min_length=1, max_length=128)
    phone: Optional[str] = Field(None, min_length=1, max_length=32)
    address: Optional[str] = None
    coordinates: Optional[CoordinatesIn] = None
    delivery_mode: Optional[DeliveryMode] = None
    requested_date: Optional[str] = None
    requested_time: Optional[str] = None
    client_note: Optional[str] = None
    admin_note: Optional[str] = None
    lines: Optional[List[LineIn]] = Field(None, min_length=1)
    version: Optional[int] = Field(None, ge=1, description="Version the editor last saw")

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def _not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("cannot be cleared")
        return value


class AdvanceRequest(BaseModel):
    status: OrderStatus


class OrderLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: str
    size_label: Optional[str]
    name: str
    unit_price: float
    quantity: int


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: Optional[str]
    first_name: str
    last_name: str
    phone: str
    address: Optional[str]
    total: float
    delivery_fee: Optional[float]
    distance_km: Optional[float]
    delivery_mode: DeliveryMode
    status: OrderStatus
    source: OrderSource
    requested_date: Optional[str]
    requested_time: Optional[str]
    client_note: Optional[str]
    admin_note: Optional[str]
    reward_id: Optional[str]
    stock_released: bool
    version: int
    created_at: datetime
    updated_at: datetime
    lines: List[OrderLineRead] = Field(default_factory=list)


class StockRead(BaseModel):
    item_id: str
    tracked: bool
    quantity: Optional[int]


class StockSet(BaseModel):
    quantity: int = Field(..., ge=0)


class StockAdjust(BaseModel):
    delta: int


class CategoryReset(BaseModel):
    category: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)


class ProfileCreate(BaseModel):
    customer_id: str = Field(..., min_length=1, max_length=128)
    email: Optional[str] = Field(None, max_length=256)
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)
    birthday: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=128)
    last_name: Optional[str] = Field(None, min_length=1, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)
    birthday: Optional[str] = Field(None, pattern=r"^\d{4}-\d{2}-\d{2}$")


class HistoryEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reason: LoyaltyReason
    points: int
    at: datetime
    order_id: Optional[str] = None
    amount: Optional[float] = None
    reward_id: Optional[str] = None


class LoyaltyRead(BaseModel):
    points: int
    lifetime_points: int
    tier: Tier
    points_to_next_tier: Optional[int]
    history: List[HistoryEntryRead]
    instagram_claimed_at: Optional[datetime] = None
    tiktok_claimed_at: Optional[datetime] = None


class ProfileRead(BaseModel):
    customer_id: str
    email: Optional[str]
    first_name: str
    last_name: str
    phone: Optional[str]
    birthday: Optional[str]
    created_at: datetime
    loyalty: LoyaltyRead
    birthday_gift_claimed: dict[str, bool] = Field(default_factory=dict)


class GrantRequest(BaseModel):
    reason: LoyaltyReason
    points: int = Field(..., gt=0)
    order_id: Optional[str] = None
    amount: Optional[float] = None


class RedeemRequest(BaseModel):
    reward_type: RewardType


class RewardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reward_type: RewardType
    points_spent: int
    claimed_at: datetime
    used_in_order_id: Optional[str]


class PreorderOpening(BaseModel):
    day: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    from_time: str = Field("00:00", pattern=r"^\d{1,2}:\d{2}$")


class ShopSettingsRead(BaseModel):
    preorder_days: List[int]
    preorder_openings: List[PreorderOpening]
    preorder_message: str


class ShopSettingsUpdate(BaseModel):
    preorder_days: Optional[List[conint(ge=0, le=6)]] = None
    preorder_openings: Optional[List[PreorderOpening]] = None
    preorder_message: Optional[str] = None


class OpenStatus(BaseModel):
    preorder_open: bool
    service_hours: bool
