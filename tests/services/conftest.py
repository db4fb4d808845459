"""
Service-level fixtures: a small seeded catalog.

    item  stock  unit cost  value   category      notes
    V       1      300       300    consumables
    W       0       -          0    -             opening only, never moved
    X     120       10      1200    spares        the reference item
    Y      15      100      1500    spares
    Z       4       -          0    -             receipt without cost
"""

from datetime import date

import pytest

from stock_kernel.domain.item import ItemMaster
from stock_kernel.services.ledger_store import LedgerStore
from stock_services import ItemCatalogService

from tests.conftest import TEST_ACTOR_ID, opening, receipt, seed_item_x


def seed_catalog(session, clock) -> None:
    store = LedgerStore(session, clock)
    seed_item_x(store)
    store.append(opening("Y", date(2024, 1, 1), 10), TEST_ACTOR_ID)
    store.append(receipt("Y", date(2024, 2, 1), 5, unit_cost=100), TEST_ACTOR_ID)
    store.append(receipt("V", date(2024, 1, 20), 1, unit_cost=300), TEST_ACTOR_ID)
    store.append(opening("W", date(2024, 1, 1), 0), TEST_ACTOR_ID)
    store.append(receipt("Z", date(2024, 2, 1), 4), TEST_ACTOR_ID)

    catalog = ItemCatalogService(session)
    catalog.upsert_item(ItemMaster("X", "Bearing 6204", "spares", "pcs"), TEST_ACTOR_ID)
    catalog.upsert_item(ItemMaster("Y", "Gearbox seal", "spares", "pcs"), TEST_ACTOR_ID)
    catalog.upsert_item(ItemMaster("V", "Cutting oil", "consumables", "l"), TEST_ACTOR_ID)
    session.flush()


@pytest.fixture
def catalog(session, clock):
    seed_catalog(session, clock)
    return session
