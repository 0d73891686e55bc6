"""Customer loyalty ledger.

Balances only move through conditional ``UPDATE`` statements and every move
writes exactly one :class:`~mayssa_admin.models.LoyaltyEvent`. One-time grants
(social follows, birthday gifts, order accrual) are rows in
``loyalty_claims`` guarded by a unique ``(customer_id, claim_key)``
constraint, so a second claim fails at insert time instead of after a read.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import schemas
from .config import Settings, get_settings
from .database import atomic
from .errors import (
    AlreadyClaimedError,
    DuplicateProfileError,
    InsufficientPointsError,
    NotFoundError,
)
from .feed import ChangeFeed, get_feed
from .logging_utils import get_logger
from .models import CustomerProfile, LoyaltyClaim, LoyaltyEvent, LoyaltyReason, Reward, RewardType
from .tiers import points_to_next_tier
from .timeutils import local_now, utcnow

logger = get_logger(__name__)

REWARD_COSTS: dict[RewardType, int] = {
    RewardType.SURPRISE_MAISON_MAYSSA: 60,
    RewardType.REMISE_5E: 100,
    RewardType.MINI_BOX: 150,
    RewardType.BOX_FIDELITE: 250,
}

REWARD_LABELS: dict[RewardType, str] = {
    RewardType.SURPRISE_MAISON_MAYSSA: "Surprise Maison Mayssa",
    RewardType.REMISE_5E: "5€ de réduction",
    RewardType.MINI_BOX: "Mini box fidélité",
    RewardType.BOX_FIDELITE: "Box fidélité premium",
}

SOCIAL_REASONS: dict[str, LoyaltyReason] = {
    "instagram": LoyaltyReason.INSTAGRAM_FOLLOW,
    "tiktok": LoyaltyReason.TIKTOK_FOLLOW,
}


def order_points(total: float) -> int:
    """Points earned for an order: its total rounded half up to a whole euro."""

    return int(Decimal(str(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def social_claim_key(platform: str) -> str:
    return f"social:{platform}"


def birthday_claim_key(year: int) -> str:
    return f"birthday:{year}"


def to_profile_read(profile: CustomerProfile) -> schemas.ProfileRead:
    gifts = {
        claim.claim_key.split(":", 1)[1]: True
        for claim in profile.claims
        if claim.claim_key.startswith("birthday:")
    }
    return schemas.ProfileRead(
        customer_id=profile.id,
        email=profile.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        phone=profile.phone,
        birthday=profile.birthday,
        created_at=profile.created_at,
        loyalty=schemas.LoyaltyRead(
            points=profile.points,
            lifetime_points=profile.lifetime_points,
            tier=profile.tier,
            points_to_next_tier=points_to_next_tier(profile.lifetime_points),
            history=[schemas.HistoryEntryRead.model_validate(event) for event in profile.history],
            instagram_claimed_at=profile.claimed_at(social_claim_key("instagram")),
            tiktok_claimed_at=profile.claimed_at(social_claim_key("tiktok")),
        ),
        birthday_gift_claimed=gifts,
    )


class LoyaltyLedger:
    def __init__(
        self,
        db: Session,
        *,
        settings: Optional[Settings] = None,
        feed: Optional[ChangeFeed] = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.feed = feed or get_feed()

    # -- profiles --------------------------------------------------------

    def get_profile(self, customer_id: str) -> CustomerProfile:
        profile = self.db.get(CustomerProfile, customer_id, populate_existing=True)
        if profile is None:
            raise NotFoundError("Customer profile", customer_id)
        return profile

    def register(self, payload: schemas.ProfileCreate) -> CustomerProfile:
        """Create a profile and credit the welcome bonus."""

        with atomic(self.db):
            if self.db.get(CustomerProfile, payload.customer_id) is not None:
                raise DuplicateProfileError(f"Customer '{payload.customer_id}' already has a profile")
            self.db.add(
                CustomerProfile(
                    id=payload.customer_id,
                    email=payload.email,
                    first_name=payload.first_name,
                    last_name=payload.last_name,
                    phone=payload.phone,
                    birthday=payload.birthday,
                    points=0,
                    lifetime_points=0,
                    created_at=utcnow(),
                )
            )
            try:
                self.db.flush()
            except IntegrityError as exc:
                raise DuplicateProfileError(f"Customer '{payload.customer_id}' already has a profile") from exc
            self._grant(payload.customer_id, LoyaltyReason.ACCOUNT_CREATED, self.settings.welcome_points)
        logger.info("Registered customer %s", payload.customer_id)
        return self._published(payload.customer_id)

    def update_profile(self, customer_id: str, payload: schemas.ProfileUpdate) -> CustomerProfile:
        with atomic(self.db):
            profile = self.get_profile(customer_id)
            for key, value in payload.model_dump(exclude_unset=True).items():
                setattr(profile, key, value)
        return self._published(customer_id)

    def delete_profile(self, customer_id: str) -> None:
        with atomic(self.db):
            self.db.delete(self.get_profile(customer_id))
        logger.info("Deleted customer %s", customer_id)
        self.feed.publish(f"users/{customer_id}", None)

    # -- balance changes -------------------------------------------------

    def grant(
        self,
        customer_id: str,
        reason: LoyaltyReason,
        points: int,
        *,
        order_id: Optional[str] = None,
        amount: Optional[float] = None,
    ) -> CustomerProfile:
        """Credit *points* to both the balance and the lifetime total."""

        with atomic(self.db):
            self._grant(customer_id, reason, points, order_id=order_id, amount=amount)
        return self._published(customer_id)

    def claim_social(self, customer_id: str, platform: str) -> CustomerProfile:
        reason = SOCIAL_REASONS.get(platform)
        if reason is None:
            raise ValueError(f"Unknown social platform '{platform}'")
        with atomic(self.db):
            self.get_profile(customer_id)
            self._claim(customer_id, social_claim_key(platform))
            self._grant(customer_id, reason, self.settings.social_points)
        return self._published(customer_id)

    def claim_birthday_gift(self, customer_id: str, year: Optional[int] = None) -> LoyaltyClaim:
        """Record that this year's birthday gift was handed over. No points move."""

        year = year or local_now().year
        with atomic(self.db):
            self.get_profile(customer_id)
            claim = self._claim(customer_id, birthday_claim_key(year))
        logger.info("Birthday gift %d recorded for %s", year, customer_id)
        self._published(customer_id)
        return claim

    def redeem(self, customer_id: str, reward_type: RewardType, cost: Optional[int] = None) -> Reward:
        """Spend points on a reward. The lifetime total, and so the tier, is unchanged."""

        reward_type = RewardType(reward_type)
        cost = REWARD_COSTS[reward_type] if cost is None else cost
        if cost <= 0:
            raise ValueError("Reward cost must be positive")

        with atomic(self.db):
            debit = (
                update(CustomerProfile)
                .where(CustomerProfile.id == customer_id, CustomerProfile.points >= cost)
                .values(points=CustomerProfile.points - cost)
                .execution_options(synchronize_session=False)
            )
            if not self.db.execute(debit).rowcount:
                profile = self.get_profile(customer_id)
                raise InsufficientPointsError(profile.points, cost)

            reward = Reward(
                customer_id=customer_id,
                reward_type=reward_type.value,
                points_spent=cost,
                claimed_at=utcnow(),
            )
            self.db.add(reward)
            self.db.flush()
            self.db.add(
                LoyaltyEvent(
                    customer_id=customer_id,
                    reason=LoyaltyReason.REWARD_REDEEMED.value,
                    points=-cost,
                    at=utcnow(),
                    reward_id=reward.id,
                )
            )
        logger.info("Customer %s redeemed %s for %d points", customer_id, reward_type.value, cost)
        self._published(customer_id)
        self.feed.publish(
            f"users/{customer_id}/rewards/{reward.id}",
            schemas.RewardRead.model_validate(reward).model_dump(mode="json"),
        )
        return reward

    def list_rewards(self, customer_id: str) -> list[Reward]:
        self.get_profile(customer_id)
        statement = (
            select(Reward)
            .where(Reward.customer_id == customer_id)
            .order_by(Reward.claimed_at)
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(statement))

    def mark_reward_used(self, customer_id: str, reward_id: str, order_id: str) -> Reward:
        with atomic(self.db):
            self.attach_reward(customer_id, reward_id, order_id)
        reward = self.db.get(Reward, reward_id, populate_existing=True)
        self.feed.publish(
            f"users/{customer_id}/rewards/{reward_id}",
            schemas.RewardRead.model_validate(reward).model_dump(mode="json"),
        )
        return reward

    # -- building blocks shared with the order lifecycle -----------------

    def attach_reward(self, customer_id: str, reward_id: str, order_id: str) -> None:
        """Link an unused reward to the order consuming it, inside the caller's transaction."""

        stmt = (
            update(Reward)
            .where(
                Reward.id == reward_id,
                Reward.customer_id == customer_id,
                Reward.used_in_order_id.is_(None),
            )
            .values(used_in_order_id=order_id)
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount:
            return
        reward = self.db.get(Reward, reward_id, populate_existing=True)
        if reward is None or reward.customer_id != customer_id:
            raise NotFoundError("Reward", reward_id)
        raise AlreadyClaimedError(f"reward:{reward_id}")

    def accrue_order_points(self, customer_id: str, order_id: str, total: float) -> int:
        """Credit points for a completed order once, inside the caller's transaction.

        Returns the number of points granted, zero when nothing was credited.
        """

        points = order_points(total)
        if points <= 0:
            return 0
        if self.db.get(CustomerProfile, customer_id) is None:
            logger.warning("Order %s completed for unknown customer %s; no points credited", order_id, customer_id)
            return 0
        key = f"order:{order_id}"
        existing = self.db.scalars(
            select(LoyaltyClaim).where(LoyaltyClaim.customer_id == customer_id, LoyaltyClaim.claim_key == key)
        ).first()
        if existing is not None:
            return 0
        self._claim(customer_id, key)
        self._grant(customer_id, LoyaltyReason.ORDER_POINTS, points, order_id=order_id, amount=total)
        return points

    def publish_profile(self, customer_id: str) -> None:
        profile = self.db.get(CustomerProfile, customer_id, populate_existing=True)
        if profile is not None:
            self.feed.publish(f"users/{customer_id}", to_profile_read(profile).model_dump(mode="json"))

    # -- internals -------------------------------------------------------

    def _grant(
        self,
        customer_id: str,
        reason: LoyaltyReason,
        points: int,
        *,
        order_id: Optional[str] = None,
        amount: Optional[float] = None,
    ) -> None:
        if points <= 0:
            raise ValueError("Granted points must be positive")
        reason = LoyaltyReason(reason)
        if reason is LoyaltyReason.REWARD_REDEEMED:
            raise ValueError("Redemptions are recorded by redeem()")

        credit = (
            update(CustomerProfile)
            .where(CustomerProfile.id == customer_id)
            .values(
                points=CustomerProfile.points + points,
                lifetime_points=CustomerProfile.lifetime_points + points,
            )
            .execution_options(synchronize_session=False)
        )
        if not self.db.execute(credit).rowcount:
            raise NotFoundError("Customer profile", customer_id)
        self.db.add(
            LoyaltyEvent(
                customer_id=customer_id,
                reason=reason.value,
                points=points,
                at=utcnow(),
                order_id=order_id,
                amount=amount,
            )
        )
        self.db.flush()
        logger.info("Granted %d points to %s (%s)", points, customer_id, reason.value)

    def _claim(self, customer_id: str, claim_key: str) -> LoyaltyClaim:
        claim = LoyaltyClaim(customer_id=customer_id, claim_key=claim_key, claimed_at=utcnow())
        self.db.add(claim)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise AlreadyClaimedError(claim_key) from exc
        return claim

    def _published(self, customer_id: str) -> CustomerProfile:
        profile = self.get_profile(customer_id)
        self.db.refresh(profile)
        self.feed.publish(f"users/{customer_id}", to_profile_read(profile).model_dump(mode="json"))
        return profile
