"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import SessionLocal
from .loyalty import LoyaltyLedger
from .orders import OrderManager
from .stock import StockLedger


def get_db() -> Generator[Session, None, None]:
    """Provide a database session for FastAPI routes."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_orders(db: Session = Depends(get_db)) -> OrderManager:
    return OrderManager(db)


def get_stock(db: Session = Depends(get_db)) -> StockLedger:
    return StockLedger(db)


def get_loyalty(db: Session = Depends(get_db)) -> LoyaltyLedger:
    return LoyaltyLedger(db)


def pagination_params(limit: int = 50, offset: int = 0) -> tuple[int, int]:
    return min(max(limit, 1), 200), max(offset, 0)
