"""Maison Mayssa transactional core: pricing, orders, stock and loyalty."""

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover - handled at runtime
    __version__ = version("mayssa-admin")
except PackageNotFoundError:  # pragma: no cover - local execution before install
    __version__ = "0.4.0"

__all__ = ["__version__"]
