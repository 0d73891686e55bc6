from fastapi import APIRouter, Depends, status

from ..dependencies import get_loyalty
from ..loyalty import LoyaltyLedger, to_profile_read
from ..schemas import GrantRequest, ProfileCreate, ProfileRead, ProfileUpdate, RedeemRequest, RewardRead

router = APIRouter(prefix="/customers", tags=["loyalty"])


@router.post("", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
def register_customer(payload: ProfileCreate, loyalty: LoyaltyLedger = Depends(get_loyalty)) -> ProfileRead:
    return to_profile_read(loyalty.register(payload))


@router.get("/{customer_id}", response_model=ProfileRead)
def get_customer(customer_id: str, loyalty: LoyaltyLedger = Depends(get_loyalty)) -> ProfileRead:
    return to_profile_read(loyalty.get_profile(customer_id))


@router.patch("/{customer_id}", response_model=ProfileRead)
def update_customer(
    customer_id: str, payload: ProfileUpdate, loyalty: LoyaltyLedger = Depends(get_loyalty)
) -> ProfileRead:
    return to_profile_read(loyalty.update_profile(customer_id, payload))


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: str, loyalty: LoyaltyLedger = Depends(get_loyalty)) -> None:
    loyalty.delete_profile(customer_id)


@router.post("/{customer_id}/grants", response_model=ProfileRead)
def grant_points(customer_id: str, payload: GrantRequest, loyalty: LoyaltyLedger = Depends(get_loyalty)) -> ProfileRead:
    profile = loyalty.grant(
        customer_id, payload.reason, payload.points, order_id=payload.order_id, amount=payload.amount
    )
    return to_profile_read(profile)


@router.post("/{customer_id}/claims/social/{platform}", response_model=ProfileRead)
def claim_social(customer_id: str, platform: str, loyalty: LoyaltyLedger = Depends(get_loyalty)) -> ProfileRead:
    return to_profile_read(loyalty.claim_social(customer_id, platform))


@router.post("/{customer_id}/claims/birthday", response_model=ProfileRead)
def claim_birthday(customer_id: str, loyalty: LoyaltyLedger = Depends(get_loyalty)) -> ProfileRead:
    loyalty.claim_birthday_gift(customer_id)
    return to_profile_read(loyalty.get_profile(customer_id))


@router.get("/{customer_id}/rewards", response_model=list[RewardRead])
def list_rewards(customer_id: str, loyalty: LoyaltyLedger = Depends(get_loyalty)):
    return loyalty.list_rewards(customer_id)


@router.post("/{customer_id}/rewards", response_model=RewardRead, status_code=status.HTTP_201_CREATED)
def redeem_reward(customer_id: str, payload: RedeemRequest, loyalty: LoyaltyLedger = Depends(get_loyalty)):
    return loyalty.redeem(customer_id, payload.reward_type)
