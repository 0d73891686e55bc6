"""Per-item stock counters.

An item is either untracked (no row, unlimited availability) or tracked with a
non-negative quantity. Every counter change is a single conditional ``UPDATE``
so two sessions reserving the same item cannot both read the same value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .catalog import Catalog
from .config import get_settings
from .errors import InsufficientStockError, StoreAccessError
from .feed import ChangeFeed, get_feed
from .logging_utils import get_logger
from .models import StockEntry

logger = get_logger(__name__)


class OversellPolicy(str, Enum):
    REJECT = "reject"
    CLAMP = "clamp"


@dataclass(frozen=True, slots=True)
class Unlimited:
    tracked = False


@dataclass(frozen=True, slots=True)
class Tracked:
    quantity: int
    tracked = True

    @property
    def sold_out(self) -> bool:
        return self.quantity <= 0


StockLevel = Union[Unlimited, Tracked]
UNLIMITED = Unlimited()


def quantity_deltas(old: Mapping[str, int], new: Mapping[str, int]) -> dict[str, int]:
    """Signed stock movement per item when an order goes from *old* to *new*.

    Positive values are returned to stock, negative values are taken from it.
    Items whose quantity did not change are omitted.
    """

    deltas = {}
    for item_id in sorted(set(old) | set(new)):
        diff = old.get(item_id, 0) - new.get(item_id, 0)
        if diff:
            deltas[item_id] = diff
    return deltas


class StockLedger:
    """Stock operations bound to one session.

    Mutations are flushed into the session's transaction; :meth:`commit`
    makes them durable and notifies ``stock/{itemId}`` subscribers.
    """

    def __init__(
        self,
        db: Session,
        *,
        policy: Optional[OversellPolicy] = None,
        feed: Optional[ChangeFeed] = None,
    ) -> None:
        self.db = db
        self.policy = OversellPolicy(policy or get_settings().oversell_policy)
        self.feed = feed or get_feed()
        self._touched: set[str] = set()

    # -- reads -----------------------------------------------------------

    def level(self, item_id: str) -> StockLevel:
        entry = self.db.get(StockEntry, item_id, populate_existing=True)
        if entry is None:
            return UNLIMITED
        return Tracked(entry.quantity)

    def snapshot(self) -> dict[str, int]:
        """Quantities of every tracked item."""

        rows = self.db.execute(select(StockEntry.item_id, StockEntry.quantity).order_by(StockEntry.item_id))
        return {item_id: quantity for item_id, quantity in rows}

    # -- counter updates -------------------------------------------------

    def reserve(self, item_id: str, quantity: int) -> StockLevel:
        if quantity < 0:
            raise ValueError("Reserved quantity must not be negative")
        if quantity == 0:
            return self.level(item_id)

        strict = (
            update(StockEntry)
            .where(StockEntry.item_id == item_id, StockEntry.quantity >= quantity)
            .values(quantity=StockEntry.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(strict).rowcount:
            self._touched.add(item_id)
            logger.info("Reserved %d x %s", quantity, item_id)
            return self.level(item_id)

        current = self.level(item_id)
        if isinstance(current, Unlimited):
            return current
        if self.policy is OversellPolicy.REJECT:
            raise InsufficientStockError(item_id, quantity, current.quantity)

        clamped = (
            update(StockEntry)
            .where(StockEntry.item_id == item_id)
            .values(
                quantity=case(
                    (StockEntry.quantity >= quantity, StockEntry.quantity - quantity),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        self.db.execute(clamped)
        self._touched.add(item_id)
        logger.warning("Oversold %s: %d requested, %d available; counter floored at 0", item_id, quantity, current.quantity)
        return self.level(item_id)

    def release(self, item_id: str, quantity: int) -> StockLevel:
        if quantity < 0:
            raise ValueError("Released quantity must not be negative")
        if quantity == 0:
            return self.level(item_id)

        stmt = (
            update(StockEntry)
            .where(StockEntry.item_id == item_id)
            .values(quantity=StockEntry.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if not self.db.execute(stmt).rowcount:
            return UNLIMITED
        self._touched.add(item_id)
        logger.info("Released %d x %s", quantity, item_id)
        return self.level(item_id)

    def reserve_many(self, quantities: Mapping[str, int]) -> None:
        for item_id in sorted(quantities):
            self.reserve(item_id, quantities[item_id])

    def release_many(self, quantities: Mapping[str, int]) -> None:
        for item_id in sorted(quantities):
            self.release(item_id, quantities[item_id])

    def apply_deltas(self, deltas: Mapping[str, int]) -> None:
        """Apply signed deltas from :func:`quantity_deltas` exactly once each."""

        for item_id in sorted(deltas):
            delta = deltas[item_id]
            if delta > 0:
                self.release(item_id, delta)
            elif delta < 0:
                self.reserve(item_id, -delta)

    # -- operator controls -----------------------------------------------

    def enable_tracking(self, item_id: str, initial_quantity: int) -> Tracked:
        return self.set_absolute(item_id, initial_quantity)

    def set_absolute(self, item_id: str, quantity: int) -> Tracked:
        if quantity < 0:
            raise ValueError("Stock quantity must not be negative")
        entry = self.db.get(StockEntry, item_id, populate_existing=True)
        if entry is None:
            self.db.add(StockEntry(item_id=item_id, quantity=quantity))
        else:
            entry.quantity = quantity
        self.db.flush()
        self._touched.add(item_id)
        logger.info("Stock for %s set to %d", item_id, quantity)
        return Tracked(quantity)

    def adjust(self, item_id: str, delta: int) -> StockLevel:
        """Operator +/- correction on a tracked counter, floored at zero. Untracked items are left alone."""

        if delta == 0:
            return self.level(item_id)
        stmt = (
            update(StockEntry)
            .where(StockEntry.item_id == item_id)
            .values(
                quantity=case(
                    (StockEntry.quantity + delta < 0, 0),
                    else_=StockEntry.quantity + delta,
                )
            )
            .execution_options(synchronize_session=False)
        )
        if not self.db.execute(stmt).rowcount:
            return UNLIMITED
        self._touched.add(item_id)
        level = self.level(item_id)
        logger.info("Stock for %s adjusted by %+d to %d", item_id, delta, level.quantity)
        return level

    def reset_category(self, catalog: Catalog, category: str, quantity: int) -> dict[str, int]:
        """Set every tracked item of *category* to *quantity*; untracked items stay unlimited."""

        if quantity < 0:
            raise ValueError("Stock quantity must not be negative")
        item_ids = [item.id for item in catalog.get_items() if item.category == category]
        if not item_ids:
            return {}
        stmt = (
            update(StockEntry)
            .where(StockEntry.item_id.in_(item_ids))
            .values(quantity=quantity)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        rows = self.db.execute(
            select(StockEntry.item_id, StockEntry.quantity)
            .where(StockEntry.item_id.in_(item_ids))
            .order_by(StockEntry.item_id)
        )
        reset = {item_id: qty for item_id, qty in rows}
        self._touched.update(reset)
        logger.info("Category %s reset to %d (%d tracked item(s))", category, quantity, len(reset))
        return reset

    def disable_tracking(self, item_id: str) -> Unlimited:
        entry = self.db.get(StockEntry, item_id, populate_existing=True)
        if entry is not None:
            self.db.delete(entry)
            self.db.flush()
        self._touched.add(item_id)
        logger.info("Stock tracking disabled for %s", item_id)
        return UNLIMITED

    # -- transaction -----------------------------------------------------

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self._touched.clear()
            logger.error("Stock commit failed: %s", exc)
            raise StoreAccessError("Could not save stock changes") from exc
        self.publish()

    def publish(self) -> None:
        touched, self._touched = self._touched, set()
        for item_id in sorted(touched):
            level = self.level(item_id)
            self.feed.publish(f"stock/{item_id}", level.quantity if isinstance(level, Tracked) else None)

    def discard(self) -> None:
        """Forget pending notifications after the caller rolled back."""

        self._touched.clear()
