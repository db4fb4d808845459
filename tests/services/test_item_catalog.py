"""
Tests for ItemCatalogService.
"""

from datetime import date

import pytest

from stock_kernel.domain.item import ItemMaster
from stock_kernel.exceptions import MissingItemCodeError
from stock_services import ItemCatalogService

from tests.conftest import TEST_ACTOR_ID, opening


class TestUpsert:

    def test_create_then_update(self, session):
        service = ItemCatalogService(session)

        created = service.upsert_item(ItemMaster(" X ", "Bearing", "spares", "pcs"), TEST_ACTOR_ID)
        updated = service.upsert_item(ItemMaster("X", "Bearing 6204", "spares", "nos"), TEST_ACTOR_ID)

        assert created.item_code == "X"
        assert updated.item_name == "Bearing 6204"
        assert service.get_item("X").unit_of_measure == "nos"
        assert len(service.list_items()) == 1

    @pytest.mark.parametrize("code", ["", "   ", None])
    def test_missing_code(self, session, code):
        with pytest.raises(MissingItemCodeError):
            ItemCatalogService(session).upsert_item(ItemMaster(code), TEST_ACTOR_ID)

    def test_get_unknown(self, session):
        assert ItemCatalogService(session).get_item("NOPE") is None


class TestListing:

    def test_list_by_category(self, session):
        service = ItemCatalogService(session)
        service.upsert_item(ItemMaster("B", category="spares"), TEST_ACTOR_ID)
        service.upsert_item(ItemMaster("A", category="spares"), TEST_ACTOR_ID)
        service.upsert_item(ItemMaster("C", category="consumables"), TEST_ACTOR_ID)

        assert [i.item_code for i in service.list_items()] == ["A", "B", "C"]
        assert [i.item_code for i in service.list_items(category="spares")] == ["A", "B"]

    def test_catalog_includes_ledger_only_items(self, session, store):
        service = ItemCatalogService(session)
        service.upsert_item(ItemMaster("M"), TEST_ACTOR_ID)
        store.append(opening("L", date(2024, 1, 1), 5), TEST_ACTOR_ID)
        store.append(opening("M", date(2024, 1, 1), 5), TEST_ACTOR_ID)

        assert service.catalog_item_codes() == ("L", "M")
