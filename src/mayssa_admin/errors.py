"""Failures raised by the ledgers and the order lifecycle."""

from __future__ import annotations

from typing import Mapping


class MayssaError(RuntimeError):
    """Base class for domain failures surfaced to callers."""


class NotFoundError(MayssaError):
    """Raised when an order, profile, reward or catalog item does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} '{key}' not found")
        self.kind = kind
        self.key = key


class InsufficientStockError(MayssaError):
    """Raised when a reservation exceeds the remaining tracked quantity."""

    def __init__(self, item_id: str, requested: int, available: int) -> None:
        super().__init__(f"Only {available} left for '{item_id}', {requested} requested")
        self.item_id = item_id
        self.requested = requested
        self.available = available


class InsufficientPointsError(MayssaError):
    def __init__(self, balance: int, cost: int) -> None:
        super().__init__(f"Insufficient points: {balance} available, {cost} required")
        self.balance = balance
        self.cost = cost


class AlreadyClaimedError(MayssaError):
    def __init__(self, claim_key: str) -> None:
        super().__init__(f"'{claim_key}' has already been claimed")
        self.claim_key = claim_key


class InvalidTransitionError(MayssaError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move an order from '{current}' to '{target}'")
        self.current = current
        self.target = target


class OrderValidationError(MayssaError):
    """Raised when a submitted order fails field validation."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        super().__init__("Order form is invalid")
        self.errors = dict(errors)


class StoreAccessError(MayssaError):
    """Raised when the database rejects or cannot serve a write."""


class DuplicateProfileError(MayssaError):
    """Raised when registering a customer id that already has a profile."""


class ConcurrentUpdateError(MayssaError):
    """Raised when a record changed after it was read and the write would overwrite that change."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} '{key}' was changed by someone else; reload and try again")
        self.kind = kind
        self.key = key
