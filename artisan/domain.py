"""
Domain — artisan marketplace entities.

Entities are owned by the Entity Store; instances held by the client are
snapshots. Drafts are the validated inputs of create-or-update calls.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from kungfu import Result, Ok, Error
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from artisan._errors import MarketError, Errors
from artisan._types import (
    PrincipalId,
    ProducerId,
    ProductId,
    OrderId,
    LiveStreamId,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Statuses
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class LiveStreamStatus(StrEnum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    ENDED = "ended"


class ApprovalStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(StrEnum):
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Principal:
    id: PrincipalId
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True, slots=True)
class UserProfile:
    name: str
    role: str  # self-declared: "buyer", "producer", ...


@dataclass(frozen=True, slots=True)
class MediaRef:
    """Opaque reference to a blob held by external storage."""
    url: str


# ═══════════════════════════════════════════════════════════════════════════════
# Catalogue
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Product:
    id: ProductId
    producer_id: ProducerId
    title: str
    description: str
    price: int  # whole currency units
    stock: int
    region: str
    rarity_badge: str = ""
    rarity_countdown_end: datetime | None = None
    live_video_url: str | None = None
    thumbnail: MediaRef | None = None
    voice_note: MediaRef | None = None

    @property
    def in_stock(self) -> bool:
        return self.stock > 0


@dataclass(frozen=True, slots=True)
class Producer:
    id: ProducerId
    name: str
    region: str
    bio: str
    brand_name: str = ""
    brand_tagline: str = ""
    brand_color: str = ""
    whatsapp: str = ""
    rarity_badge: str = ""
    profile_photo: MediaRef | None = None
    brand_logo: MediaRef | None = None
    voice_story: MediaRef | None = None
    approval: ApprovalStatus = ApprovalStatus.PENDING
    follower_count: int = 0

    @property
    def display_name(self) -> str:
        return self.brand_name or self.name

    @property
    def is_verified(self) -> bool:
        return self.approval == ApprovalStatus.APPROVED


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    id: OrderId
    buyer: PrincipalId
    product_id: ProductId
    producer_id: ProducerId  # owner at creation time
    quantity: int
    status: OrderStatus
    created_at: datetime
    payment_proof: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Live sessions
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LiveStream:
    id: LiveStreamId
    producer_id: ProducerId
    title: str
    description: str
    start_time: datetime
    status: LiveStreamStatus = LiveStreamStatus.SCHEDULED
    story: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# Approvals
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ApprovalInfo:
    producer_id: ProducerId
    status: ApprovalStatus


@dataclass(frozen=True, slots=True)
class ApprovalEvent:
    """One admin decision; the store keeps these append-only."""
    producer_id: ProducerId
    previous: ApprovalStatus
    status: ApprovalStatus
    actor: PrincipalId
    at: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Drafts: validated create-or-update inputs
# ═══════════════════════════════════════════════════════════════════════════════


class _Draft(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    def fields(self, *, exclude: frozenset[str] = frozenset()) -> dict[str, Any]:
        """Shallow field values; nested media refs stay ``MediaRef`` instances."""
        return {k: getattr(self, k) for k in type(self).model_fields if k not in exclude}


class ProductDraft(_Draft):
    id: str | None = None
    title: str = Field(min_length=1)
    description: str = ""
    price: int = Field(ge=0)
    stock: int = Field(ge=0)
    region: str = Field(min_length=1)
    rarity_badge: str = ""
    rarity_countdown_end: datetime | None = None
    live_video_url: str | None = None
    thumbnail: MediaRef | None = None
    voice_note: MediaRef | None = None


class ProducerProfileDraft(_Draft):
    name: str = Field(min_length=1)
    region: str = Field(min_length=1)
    bio: str = ""
    brand_name: str = ""
    brand_tagline: str = ""
    brand_color: str = ""
    whatsapp: str = ""
    rarity_badge: str = ""
    profile_photo: MediaRef | None = None
    brand_logo: MediaRef | None = None
    voice_story: MediaRef | None = None

    @field_validator("brand_color")
    @classmethod
    def _hex_color(cls, v: str) -> str:
        if v and not (v.startswith("#") and len(v) in (4, 7)):
            raise ValueError("brand_color must be a #rgb or #rrggbb hex value")
        return v


class LiveStreamDraft(_Draft):
    title: str = Field(min_length=1)
    description: str = ""
    start_time: datetime


def validate_draft[D: _Draft](
    model: type[D],
    data: D | Mapping[str, Any],
) -> Result[D, MarketError]:
    """Validate raw create-or-update input into a draft."""
    if isinstance(data, model):
        return Ok(data)
    try:
        return Ok(model.model_validate(data))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        return Error(Errors.validation(problems))


__all__ = (
    "OrderStatus",
    "LiveStreamStatus",
    "ApprovalStatus",
    "Role",
    "Principal",
    "UserProfile",
    "MediaRef",
    "Product",
    "Producer",
    "Order",
    "LiveStream",
    "ApprovalInfo",
    "ApprovalEvent",
    "ProductDraft",
    "ProducerProfileDraft",
    "LiveStreamDraft",
    "validate_draft",
)
