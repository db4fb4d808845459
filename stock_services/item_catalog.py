"""
stock_services.item_catalog -- Item master maintenance.

The item master is descriptive only (name, category, unit).  Unlike the
ledger it may be updated in place.  Items with ledger entries but no master
row still belong to the catalog.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.item import ItemMaster
from stock_kernel.exceptions import MissingItemCodeError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import ItemMasterModel
from stock_kernel.selectors.ledger_selector import LedgerSelector

logger = get_logger("services.item_catalog")


class ItemCatalogService:

    def __init__(self, session: Session):
        self._session = session
        self._selector = LedgerSelector(session)

    def upsert_item(self, item: ItemMaster, actor_id: UUID) -> ItemMaster:
        """Create or update the master row for ``item.item_code``."""
        code = (item.item_code or "").strip()
        if not code:
            raise MissingItemCodeError("item_master")

        model = self._session.execute(
            select(ItemMasterModel).where(ItemMasterModel.item_code == code)
        ).scalar_one_or_none()

        if model is None:
            model = ItemMasterModel(
                item_code=code,
                item_name=item.item_name,
                category=item.category,
                unit_of_measure=item.unit_of_measure,
                created_by_id=actor_id,
            )
            self._session.add(model)
            action = "created"
        else:
            model.item_name = item.item_name
            model.category = item.category
            model.unit_of_measure = item.unit_of_measure
            model.updated_by_id = actor_id
            action = "updated"

        self._session.flush()
        logger.info("item_master_upserted", extra={"item_code": code, "action": action})
        return model.to_dto()

    def get_item(self, item_code: str) -> ItemMaster | None:
        model = self._session.execute(
            select(ItemMasterModel).where(ItemMasterModel.item_code == item_code.strip())
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_items(self, category: str | None = None) -> tuple[ItemMaster, ...]:
        stmt = select(ItemMasterModel).order_by(ItemMasterModel.item_code)
        if category is not None:
            stmt = stmt.where(ItemMasterModel.category == category)
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars().all())

    def catalog_item_codes(self) -> tuple[str, ...]:
        """Every item with a master row or any ledger entry."""
        return self._selector.catalog_item_codes()
