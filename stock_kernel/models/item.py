"""
Module: stock_kernel.models.item
Responsibility: Optional descriptive item master (name, category, unit).

Architecture position: Kernel > Models.  Not part of the ledger; rows may be
    updated freely.  Items appear in the catalog whether or not they have a
    master row.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.item import ItemMaster


class ItemMasterModel(TrackedBase):
    """Descriptive attributes of a stock item keyed by item_code."""

    __tablename__ = "stock_items"

    item_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    item_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    unit_of_measure: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def to_dto(self) -> ItemMaster:
        return ItemMaster(
            item_code=self.item_code,
            item_name=self.item_name,
            category=self.category,
            unit_of_measure=self.unit_of_measure,
        )

    def __repr__(self) -> str:
        return f"<ItemMasterModel {self.item_code} category={self.category}>"
