import os
import tempfile
from collections.abc import Generator
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

os.environ.setdefault("MAYSSA_DATA_DIR", tempfile.mkdtemp(prefix="mayssa-tests-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from mayssa_admin.app import create_app
from mayssa_admin.catalog import Catalog, CatalogItem, SizeVariant
from mayssa_admin.database import Base, init_database
from mayssa_admin.dependencies import get_db
from mayssa_admin.feed import ChangeFeed
from mayssa_admin.loyalty import LoyaltyLedger
from mayssa_admin.orders import OrderManager
from mayssa_admin.pricing import Coordinates, DeliveryZone
from mayssa_admin.stock import OversellPolicy, StockLedger

ANNECY = Coordinates(45.9017, 6.1217)


def _create_test_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(name="db_engine")
def db_engine_fixture() -> Generator[Any, None, None]:
    engine = _create_test_engine()
    init_database(bind=engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session_factory")
def session_factory_fixture(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(name="db")
def db_fixture(session_factory) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(name="feed")
def feed_fixture() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture(name="catalog")
def catalog_fixture() -> Catalog:
    return Catalog(
        [
            CatalogItem("brownie", "Brownie Pistache", 3.5, "Brownies"),
            CatalogItem("cookie", "Cookie Nutella", 3.0, "Cookies"),
            CatalogItem("box-mixte", "Box Mixte x6", 25.0, "Boxes"),
            CatalogItem(
                "layer-cup",
                "Layer Cup",
                4.0,
                "Layer Cups",
                (SizeVariant("250 ml", 4.0), SizeVariant("500 ml", 8.0)),
            ),
        ]
    )


@pytest.fixture(name="zone")
def zone_fixture() -> DeliveryZone:
    return DeliveryZone(reference=ANNECY, radius_km=5.0, flat_fee=5.0, free_threshold=45.0)


@pytest.fixture(name="now")
def now_fixture() -> datetime:
    return datetime(2099, 3, 4, 12, 0, tzinfo=ZoneInfo("Europe/Paris"))


@pytest.fixture(name="stock")
def stock_fixture(db, feed) -> StockLedger:
    return StockLedger(db, policy=OversellPolicy.REJECT, feed=feed)


@pytest.fixture(name="loyalty")
def loyalty_fixture(db, feed) -> LoyaltyLedger:
    return LoyaltyLedger(db, feed=feed)


@pytest.fixture(name="orders")
def orders_fixture(db, catalog, zone, feed) -> OrderManager:
    return OrderManager(db, catalog=catalog, zone=zone, policy=OversellPolicy.REJECT, feed=feed)


@pytest.fixture(name="client")
def client_fixture(session_factory):  # type: ignore[annotations]
    app = create_app()

    def get_db_override() -> Generator[Session, None, None]:
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = get_db_override

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
