import pytest

from mayssa_admin.errors import (
    AlreadyClaimedError,
    DuplicateProfileError,
    InsufficientPointsError,
    NotFoundError,
)
from mayssa_admin.loyalty import REWARD_COSTS, LoyaltyLedger, order_points, to_profile_read
from mayssa_admin.models import LoyaltyReason, RewardType
from mayssa_admin.schemas import ProfileCreate, ProfileUpdate
from mayssa_admin.tiers import Tier, points_to_next_tier, tier_for


@pytest.fixture(name="member")
def member_fixture(loyalty):
    return loyalty.register(
        ProfileCreate(customer_id="uid-1", first_name="Inès", last_name="Benali", birthday="1995-04-12")
    )


@pytest.mark.parametrize(
    ("lifetime", "tier"),
    [(0, Tier.DOUCEUR), (149, Tier.DOUCEUR), (150, Tier.GOURMAND), (399, Tier.GOURMAND), (400, Tier.PRESTIGE)],
)
def test_tier_thresholds(lifetime: int, tier: Tier) -> None:
    assert tier_for(lifetime) is tier


def test_points_to_next_tier() -> None:
    assert points_to_next_tier(0) == 150
    assert points_to_next_tier(149) == 1
    assert points_to_next_tier(150) == 250
    assert points_to_next_tier(400) is None


def test_order_points_round_half_up() -> None:
    assert order_points(12.5) == 13
    assert order_points(12.49) == 12
    assert order_points(0.4) == 0


def test_register_grants_welcome_points(member) -> None:
    assert member.points == 15
    assert member.lifetime_points == 15
    assert member.tier is Tier.DOUCEUR
    assert [event.reason for event in member.history] == [LoyaltyReason.ACCOUNT_CREATED.value]


def test_register_twice_is_refused(loyalty, member) -> None:
    with pytest.raises(DuplicateProfileError):
        loyalty.register(ProfileCreate(customer_id="uid-1", first_name="Autre", last_name="Nom"))


def test_reaching_150_lifetime_points_promotes_to_gourmand(loyalty, member) -> None:
    profile = loyalty.grant("uid-1", LoyaltyReason.REVIEW_BONUS, 134)
    assert profile.lifetime_points == 149
    assert profile.tier is Tier.DOUCEUR

    profile = loyalty.grant("uid-1", LoyaltyReason.RAMADAN_BONUS, 1)
    assert profile.lifetime_points == 150
    assert profile.tier is Tier.GOURMAND


def test_redeem_with_insufficient_balance_changes_nothing(loyalty, member) -> None:
    loyalty.grant("uid-1", LoyaltyReason.REVIEW_BONUS, 65)
    with pytest.raises(InsufficientPointsError) as excinfo:
        loyalty.redeem("uid-1", RewardType.REMISE_5E)
    assert excinfo.value.balance == 80
    assert excinfo.value.cost == 100

    profile = loyalty.get_profile("uid-1")
    assert profile.points == 80
    assert loyalty.list_rewards("uid-1") == []


def test_redeem_spends_balance_but_keeps_tier(loyalty, member) -> None:
    loyalty.grant("uid-1", LoyaltyReason.ANNIVERSARY_BONUS, 185)
    reward = loyalty.redeem("uid-1", RewardType.MINI_BOX)

    profile = loyalty.get_profile("uid-1")
    assert reward.points_spent == REWARD_COSTS[RewardType.MINI_BOX] == 150
    assert profile.points == 50
    assert profile.lifetime_points == 200
    assert profile.tier is Tier.GOURMAND
    last = profile.history[-1]
    assert last.reason == LoyaltyReason.REWARD_REDEEMED.value
    assert last.points == -150
    assert last.reward_id == reward.id


def test_social_bonus_is_granted_once(loyalty, member) -> None:
    profile = loyalty.claim_social("uid-1", "instagram")
    assert profile.points == 30

    with pytest.raises(AlreadyClaimedError):
        loyalty.claim_social("uid-1", "instagram")
    profile = loyalty.get_profile("uid-1")
    assert profile.points == 30
    assert len(profile.history) == 2

    assert loyalty.claim_social("uid-1", "tiktok").points == 45
    read = to_profile_read(loyalty.get_profile("uid-1"))
    assert read.loyalty.instagram_claimed_at is not None
    assert read.loyalty.tiktok_claimed_at is not None


def test_unknown_social_platform_is_refused(loyalty, member) -> None:
    with pytest.raises(ValueError):
        loyalty.claim_social("uid-1", "myspace")


def test_birthday_gift_once_per_year(loyalty, member) -> None:
    loyalty.claim_birthday_gift("uid-1", year=2099)
    with pytest.raises(AlreadyClaimedError):
        loyalty.claim_birthday_gift("uid-1", year=2099)
    loyalty.claim_birthday_gift("uid-1", year=2100)

    read = to_profile_read(loyalty.get_profile("uid-1"))
    assert read.birthday_gift_claimed == {"2099": True, "2100": True}
    assert read.loyalty.points == 15


def test_grant_rejects_bad_requests(loyalty, member) -> None:
    with pytest.raises(ValueError):
        loyalty.grant("uid-1", LoyaltyReason.REVIEW_BONUS, 0)
    with pytest.raises(ValueError):
        loyalty.grant("uid-1", LoyaltyReason.REWARD_REDEEMED, 10)
    with pytest.raises(NotFoundError):
        loyalty.grant("nobody", LoyaltyReason.REVIEW_BONUS, 10)
    assert loyalty.get_profile("uid-1").points == 15


def test_mark_reward_used_only_once(loyalty, member) -> None:
    reward = loyalty.redeem("uid-1", RewardType.SURPRISE_MAISON_MAYSSA, cost=15)
    used = loyalty.mark_reward_used("uid-1", reward.id, "order-1")
    assert used.used_in_order_id == "order-1"
    with pytest.raises(AlreadyClaimedError):
        loyalty.mark_reward_used("uid-1", reward.id, "order-2")
    with pytest.raises(NotFoundError):
        loyalty.mark_reward_used("uid-1", "missing", "order-3")


def test_update_and_delete_profile(loyalty, member, feed) -> None:
    seen = []
    feed.subscribe("users/uid-1", lambda path, value: seen.append(value))

    updated = loyalty.update_profile("uid-1", ProfileUpdate(phone="0611223344"))
    assert updated.phone == "0611223344"
    assert updated.first_name == "Inès"

    loyalty.delete_profile("uid-1")
    with pytest.raises(NotFoundError):
        loyalty.get_profile("uid-1")
    assert seen[0]["phone"] == "0611223344"
    assert seen[-1] is None


def test_concurrent_redeems_spend_the_balance_once(session_factory, feed) -> None:
    with session_factory() as setup:
        ledger = LoyaltyLedger(setup, feed=feed)
        ledger.register(ProfileCreate(customer_id="uid-9", first_name="Sami", last_name="K"))
        ledger.grant("uid-9", LoyaltyReason.REVIEW_BONUS, 85)

    with session_factory() as first, session_factory() as second:
        late = LoyaltyLedger(second, feed=feed)
        assert late.get_profile("uid-9").points == 100

        LoyaltyLedger(first, feed=feed).redeem("uid-9", RewardType.REMISE_5E)
        with pytest.raises(InsufficientPointsError) as excinfo:
            late.redeem("uid-9", RewardType.REMISE_5E)
        assert excinfo.value.balance == 0

    with session_factory() as check:
        ledger = LoyaltyLedger(check, feed=feed)
        profile = ledger.get_profile("uid-9")
        assert profile.points == 0
        assert profile.lifetime_points == 100
        assert len(ledger.list_rewards("uid-9")) == 1


def test_concurrent_social_claims_grant_once(session_factory, feed) -> None:
    with session_factory() as setup:
        LoyaltyLedger(setup, feed=feed).register(ProfileCreate(customer_id="uid-9", first_name="Sami", last_name="K"))

    with session_factory() as first, session_factory() as second:
        late = LoyaltyLedger(second, feed=feed)
        late.get_profile("uid-9")

        LoyaltyLedger(first, feed=feed).claim_social("uid-9", "instagram")
        with pytest.raises(AlreadyClaimedError):
            late.claim_social("uid-9", "instagram")

    with session_factory() as check:
        profile = LoyaltyLedger(check, feed=feed).get_profile("uid-9")
        assert profile.points == 30
        bonuses = [event for event in profile.history if event.reason == LoyaltyReason.INSTAGRAM_FOLLOW.value]
        assert len(bonuses) == 1
