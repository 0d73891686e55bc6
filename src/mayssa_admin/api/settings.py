from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..dependencies import get_db
from ..preorder import effective_openings, get_shop_settings, is_open_now, is_within_service_hours, update_shop_settings
from ..schemas import OpenStatus, ShopSettingsRead, ShopSettingsUpdate

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=ShopSettingsRead)
def read_settings(db: Session = Depends(get_db)) -> ShopSettingsRead:
    return get_shop_settings(db)


@router.patch("", response_model=ShopSettingsRead)
def patch_settings(payload: ShopSettingsUpdate, db: Session = Depends(get_db)) -> ShopSettingsRead:
    return update_shop_settings(db, payload)


@router.get("/open", response_model=OpenStatus)
def open_status(db: Session = Depends(get_db)) -> OpenStatus:
    openings = effective_openings(get_shop_settings(db))
    return OpenStatus(preorder_open=is_open_now(openings), service_hours=is_within_service_hours())
