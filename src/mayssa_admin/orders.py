"""Order lifecycle: placement, operator transitions, edits and deletion.

Stock is reserved when an order is created (site or off-platform) and given
back only when it is rejected. Whether that release already happened is kept
on the order itself (``stock_released``) so repeated rejections never return
the same units twice.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from . import schemas
from .catalog import Catalog, get_catalog
from .database import atomic
from .errors import ConcurrentUpdateError, InvalidTransitionError, NotFoundError, OrderValidationError
from .feed import ChangeFeed, get_feed
from .logging_utils import get_logger
from .loyalty import LoyaltyLedger
from .models import DeliveryMode, Order, OrderLine, OrderSource, OrderStatus
from .pricing import (
    Coordinates,
    DeliveryZone,
    PricedLine,
    compute_delivery_quote,
    price_lines,
    quote_order,
    subtotal_of,
)
from .stock import OversellPolicy, StockLedger, quantity_deltas
from .validation import validate_contact, validate_customer

logger = get_logger(__name__)

# Display states an accepted order moves through, in order.
FULFILMENT_STEPS: tuple[OrderStatus, ...] = (
    OrderStatus.ACCEPTED,
    OrderStatus.IN_PREPARATION,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
)


def _quantities(lines: Iterable[PricedLine]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for line in lines:
        totals[line.item_id] = totals.get(line.item_id, 0) + line.quantity
    return totals


def _order_lines(lines: Iterable[PricedLine]) -> list[OrderLine]:
    return [
        OrderLine(
            position=position,
            item_id=line.item_id,
            size_label=line.size_label,
            name=line.name,
            unit_price=line.unit_price,
            quantity=line.quantity,
        )
        for position, line in enumerate(lines)
    ]


def _coordinates(order: Order) -> Optional[Coordinates]:
    if order.latitude is None or order.longitude is None:
        return None
    return Coordinates(order.latitude, order.longitude)


class OrderManager:
    def __init__(
        self,
        db: Session,
        *,
        catalog: Optional[Catalog] = None,
        zone: Optional[DeliveryZone] = None,
        policy: Optional[OversellPolicy] = None,
        feed: Optional[ChangeFeed] = None,
    ) -> None:
        self.db = db
        self.catalog = catalog or get_catalog()
        self.zone = zone or DeliveryZone.from_settings()
        self.feed = feed or get_feed()
        self.stock = StockLedger(db, policy=policy, feed=self.feed)
        self.loyalty = LoyaltyLedger(db, feed=self.feed)

    # -- reads -----------------------------------------------------------

    def get(self, order_id: str) -> Order:
        statement = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.lines))
            .execution_options(populate_existing=True)
        )
        order = self.db.scalars(statement).first()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(self, status: Optional[OrderStatus] = None, *, limit: int = 50, offset: int = 0) -> list[Order]:
        statement = select(Order)
        if status is not None:
            statement = statement.where(Order.status == OrderStatus(status).value)
        statement = (
            statement.order_by(Order.created_at.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(statement))

    # -- creation --------------------------------------------------------

    def place(self, payload: schemas.OrderCreate, *, now: Optional[datetime] = None) -> Order:
        """Validate, price and record a customer order, reserving its stock."""

        errors = validate_customer(payload, now)
        if errors:
            raise OrderValidationError(errors)

        coordinates = payload.coordinates.to_point() if payload.coordinates else None
        quote = quote_order(payload.lines, payload.delivery_mode, coordinates, self.catalog, self.zone)
        delivery = payload.delivery_mode is DeliveryMode.DELIVERY

        order = Order(
            customer_id=payload.customer_id,
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            phone=payload.phone.strip(),
            address=payload.address.strip() if delivery else None,
            latitude=coordinates.lat if delivery and coordinates else None,
            longitude=coordinates.lng if delivery and coordinates else None,
            total=quote.subtotal,
            delivery_fee=quote.delivery.fee,
            distance_km=quote.delivery.distance_km,
            delivery_mode=payload.delivery_mode.value,
            status=OrderStatus.PENDING.value,
            source=OrderSource.SITE.value,
            requested_date=payload.date.strip(),
            requested_time=payload.time.strip(),
            client_note=(payload.client_note or "").strip() or None,
            reward_id=payload.reward_id,
            lines=_order_lines(quote.lines),
        )
        with self._write():
            self.db.add(order)
            self.db.flush()
            self.stock.reserve_many(_quantities(quote.lines))
            if payload.reward_id:
                if not payload.customer_id:
                    raise NotFoundError("Reward", payload.reward_id)
                self.loyalty.attach_reward(payload.customer_id, payload.reward_id, order.id)
        logger.info("Order %s placed: %d line(s), total %.2f", order.id, len(quote.lines), quote.subtotal)
        return self._published(order.id)

    def record_offsite(self, payload: schemas.OffsiteOrderCreate) -> Order:
        """Record a sale taken over messaging; it is accepted and holds stock at once."""

        coordinates = payload.coordinates.to_point() if payload.coordinates else None
        quote = quote_order(payload.lines, payload.delivery_mode, coordinates, self.catalog, self.zone)
        delivery = payload.delivery_mode is DeliveryMode.DELIVERY

        order = Order(
            customer_id=payload.customer_id,
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            phone=payload.phone.strip(),
            address=(payload.address or "").strip() or None if delivery else None,
            latitude=coordinates.lat if delivery and coordinates else None,
            longitude=coordinates.lng if delivery and coordinates else None,
            total=quote.subtotal,
            delivery_fee=quote.delivery.fee,
            distance_km=quote.delivery.distance_km,
            delivery_mode=payload.delivery_mode.value,
            status=OrderStatus.ACCEPTED.value,
            source=payload.source.value,
            requested_date=payload.requested_date,
            requested_time=payload.requested_time,
            admin_note=(payload.admin_note or "").strip() or None,
            lines=_order_lines(quote.lines),
        )
        with self._write():
            self.db.add(order)
            self.db.flush()
            self.stock.reserve_many(_quantities(quote.lines))
        logger.info("Off-platform order %s recorded from %s", order.id, payload.source.value)
        return self._published(order.id)

    # -- transitions -----------------------------------------------------

    def accept(self, order_id: str) -> Order:
        order = self.get(order_id)
        if order.status == OrderStatus.ACCEPTED.value:
            return order
        with self._write():
            self._move(order, OrderStatus.PENDING, OrderStatus.ACCEPTED)
        logger.info("Order %s accepted", order_id)
        return self._published(order_id)

    def reject(self, order_id: str) -> Order:
        """Refuse an order and give its stock back, once per order."""

        order = self.get(order_id)
        delivered = OrderStatus.DELIVERED.value
        if order.status == delivered:
            raise InvalidTransitionError(order.status, OrderStatus.REJECTED.value)
        seen, held = order.version, order.quantities()

        with self._write():
            claim_release = (
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.version == seen,
                    Order.status != delivered,
                    Order.stock_released.is_(False),
                )
                .values(stock_released=True, status=OrderStatus.REJECTED.value, version=seen + 1)
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(claim_release).rowcount:
                self.stock.release_many(held)
                logger.info("Order %s rejected, stock released", order_id)
            else:
                relabel = (
                    update(Order)
                    .where(Order.id == order_id, Order.status != delivered, Order.stock_released.is_(True))
                    .values(status=OrderStatus.REJECTED.value, version=Order.version + 1)
                    .execution_options(synchronize_session=False)
                )
                if not self.db.execute(relabel).rowcount:
                    latest = self.get(order_id)
                    if latest.status == delivered:
                        raise InvalidTransitionError(delivered, OrderStatus.REJECTED.value)
                    raise ConcurrentUpdateError("Order", order_id)
                logger.info("Order %s rejected, stock already released", order_id)
        return self._published(order_id)

    def reopen(self, order_id: str) -> Order:
        """Put a rejected order back to pending, reserving its stock again."""

        order = self.get(order_id)
        if order.status != OrderStatus.REJECTED.value:
            raise InvalidTransitionError(order.status, OrderStatus.PENDING.value)
        seen, held, released = order.version, order.quantities(), order.stock_released
        with self._write():
            reclaim = (
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.version == seen,
                    Order.status == OrderStatus.REJECTED.value,
                )
                .values(status=OrderStatus.PENDING.value, stock_released=False, version=seen + 1)
                .execution_options(synchronize_session=False)
            )
            if not self.db.execute(reclaim).rowcount:
                latest = self.get(order_id)
                if latest.status != OrderStatus.REJECTED.value:
                    raise InvalidTransitionError(latest.status, OrderStatus.PENDING.value)
                raise ConcurrentUpdateError("Order", order_id)
            if released:
                self.stock.reserve_many(held)
        logger.info("Order %s reopened", order_id)
        return self._published(order_id)

    def advance(self, order_id: str, target: OrderStatus) -> Order:
        """Move an accepted order forward through preparation and delivery."""

        target = OrderStatus(target)
        order = self.get(order_id)
        current = OrderStatus(order.status)
        if (
            target not in FULFILMENT_STEPS[1:]
            or current not in FULFILMENT_STEPS
            or FULFILMENT_STEPS.index(target) <= FULFILMENT_STEPS.index(current)
        ):
            raise InvalidTransitionError(current.value, target.value)

        accrued = 0
        with self._write():
            self._move(order, current, target)
            if target is OrderStatus.DELIVERED and order.customer_id:
                accrued = self.loyalty.accrue_order_points(order.customer_id, order.id, order.total)
        logger.info("Order %s moved to %s", order_id, target.value)
        if accrued:
            self.loyalty.publish_profile(order.customer_id)
        return self._published(order_id)

    # -- operator edits --------------------------------------------------

    def edit(self, order_id: str, patch: schemas.OrderPatch) -> Order:
        """Apply an operator edit, re-pricing from the catalog and diffing stock."""

        order = self.get(order_id)
        if patch.version is not None and patch.version != order.version:
            raise ConcurrentUpdateError("Order", order_id)
        changes = patch.model_dump(exclude_unset=True, exclude={"lines", "coordinates", "delivery_mode", "version"})
        errors = validate_contact(changes)
        if errors:
            raise OrderValidationError(errors)
        seen, held = order.version, order.quantities()

        with self._write():
            self._claim_version(order_id, seen)
            if patch.lines is not None:
                priced = price_lines(patch.lines, self.catalog)
                if not order.stock_released:
                    self.stock.apply_deltas(quantity_deltas(held, _quantities(priced)))
                order.lines = _order_lines(priced)
            else:
                priced = price_lines(order.lines, self.catalog)
                for line, fresh in zip(order.lines, priced):
                    line.name = fresh.name
                    line.unit_price = fresh.unit_price

            for key, value in changes.items():
                if isinstance(value, str):
                    value = value.strip() or None if key in {"address", "client_note", "admin_note"} else value.strip()
                setattr(order, key, value)
            if patch.delivery_mode is not None:
                order.delivery_mode = patch.delivery_mode.value
            if "coordinates" in patch.model_fields_set:
                point = patch.coordinates.to_point() if patch.coordinates else None
                order.latitude = point.lat if point else None
                order.longitude = point.lng if point else None
            if order.delivery_mode == DeliveryMode.PICKUP.value:
                order.address = None
                order.latitude = order.longitude = None

            order.total = subtotal_of(priced)
            quote = compute_delivery_quote(order.delivery_mode, _coordinates(order), order.total, self.zone)
            order.delivery_fee = quote.fee
            order.distance_km = quote.distance_km
        logger.info("Order %s edited, total now %.2f", order_id, order.total)
        return self._published(order_id)

    def delete(self, order_id: str) -> None:
        """Remove an order for bookkeeping. Stock is left as it is."""

        order = self.get(order_id)
        with self._write():
            self.db.delete(order)
        logger.info("Order %s deleted", order_id)
        self.feed.publish(f"orders/{order_id}", None)

    # -- internals -------------------------------------------------------

    def _claim_version(self, order_id: str, seen: int) -> None:
        """Take the order for this write, failing if it changed since it was read."""

        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.version == seen)
            .values(version=seen + 1)
            .execution_options(synchronize_session=False)
        )
        if not self.db.execute(stmt).rowcount:
            raise ConcurrentUpdateError("Order", order_id)

    def _move(self, order: Order, current: OrderStatus, target: OrderStatus) -> None:
        stmt = (
            update(Order)
            .where(Order.id == order.id, Order.status == current.value)
            .values(status=target.value, version=Order.version + 1)
            .execution_options(synchronize_session=False)
        )
        if not self.db.execute(stmt).rowcount:
            latest = self.get(order.id)
            raise InvalidTransitionError(latest.status, target.value)

    @contextmanager
    def _write(self) -> Iterator[None]:
        try:
            with atomic(self.db):
                yield
        except Exception:
            self.stock.discard()
            raise
        self.stock.publish()

    def _published(self, order_id: str) -> Order:
        order = self.get(order_id)
        self.db.refresh(order)
        self.feed.publish(f"orders/{order_id}", schemas.OrderRead.model_validate(order).model_dump(mode="json"))
        return order
