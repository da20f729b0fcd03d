# Overview: Pytest coverage for the transaction boundary helper.

import pytest
from sqlalchemy import update

from stockbook.errors import ConflictError
from stockbook.models import InventoryItem, StockAdjustment
from stockbook.services.concurrency import atomic


class TestAtomic:
    def test_lost_update_becomes_conflict(self, db_session, item_a):
        table = InventoryItem.__table__

        def _op():
            item = db_session.get(InventoryItem, item_a.id)
            assert item.version_id >= 1
            # Another writer commits first and bumps the version counter
            db_session.execute(
                update(table).where(table.c.id == item_a.id).values(version_id=table.c.version_id + 1)
            )
            item.quantity = 1
            db_session.flush()

        with pytest.raises(ConflictError):
            atomic(_op)

        assert db_session.get(InventoryItem, item_a.id).quantity == 15

    def test_failure_rolls_back_every_write(self, db_session, company_a, item_a):
        def _op():
            item = db_session.get(InventoryItem, item_a.id)
            item.quantity = 3
            db_session.add(StockAdjustment(
                company_id=company_a.id,
                inventory_id=item.id,
                type="subtract",
                quantity=12,
                price_cents=100,
            ))
            db_session.flush()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            atomic(_op)

        assert db_session.get(InventoryItem, item_a.id).quantity == 15
        assert db_session.query(StockAdjustment).count() == 0

    def test_commits_on_success(self, db_session, item_a):
        def _op():
            item = db_session.get(InventoryItem, item_a.id)
            item.name = "Committed"
            return item

        item = atomic(_op)
        db_session.expire_all()
        assert item.name == "Committed"
