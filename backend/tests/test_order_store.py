"""Service-level tests for the persistent member order store."""

from __future__ import annotations

import unittest
from datetime import timedelta

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgermatch.matching.types import IdentityRecord
from ledgermatch.models.base import Base, utcnow
from ledgermatch.models.learned_alias import LearnedAlias
from ledgermatch.models.order_entry import OrderEntry
from ledgermatch.models.order_group import OrderGroup
from ledgermatch.models.order_history_entry import OrderHistoryEntry
from ledgermatch.models.order_snapshot import OrderSnapshot
from ledgermatch.schemas.order import PositionUpdate
from ledgermatch.services.history import list_history
from ledgermatch.services.order_store import (
    batch_update_positions,
    create_snapshot,
    deactivate_members,
    delete_group_data,
    get_group_metadata,
    get_member_entry,
    get_ordered_members,
    get_snapshot_for_history,
    has_persisted_order,
    initialize_order,
    list_groups,
    list_members_first_seen_in,
    list_snapshots,
    reset_order_from_roster,
    restore_snapshot,
    sync_with_roster,
    update_member_position,
    validate_and_repair_order,
)

GROUP = "assembly-north"


def _roster(count: int) -> list[IdentityRecord]:
    return [
        IdentityRecord(primary_id=f"TAC{index:03d}", first_name=f"Member{index}", surname="Mensah")
        for index in range(1, count + 1)
    ]


class OrderStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        self._reset_tables()

    def tearDown(self) -> None:
        self.db.close()

    def _reset_tables(self) -> None:
        for model in (LearnedAlias, OrderSnapshot, OrderHistoryEntry, OrderEntry, OrderGroup):
            self.db.execute(delete(model))
        self.db.commit()

    def _positions(self, group_key: str = GROUP) -> dict[str, int | None]:
        return {entry.member_id: entry.position for entry in get_ordered_members(self.db, group_key)}

    def test_initialize_assigns_dense_positions_and_skips_bad_rows(self) -> None:
        roster = [
            *_roster(3),
            IdentityRecord(first_name="No", surname="Identifier"),
            IdentityRecord(primary_id="tac002", first_name="Repeat", surname="Row"),
        ]

        result = initialize_order(self.db, GROUP, roster)

        self.assertEqual(result.member_count, 3)
        self.assertEqual(result.skipped_count, 2)
        self.assertIsNone(result.snapshot_id)
        self.assertEqual(self._positions(), {"TAC001": 1, "TAC002": 2, "TAC003": 3})
        self.assertTrue(has_persisted_order(self.db, GROUP))
        self.assertEqual(get_group_metadata(self.db, GROUP).total_members, 3)
        self.assertEqual([group.group_key for group in list_groups(self.db)], [GROUP])
        self.assertEqual(list_history(self.db, GROUP)[0].action, "import")

        again = initialize_order(self.db, GROUP, _roster(2))
        self.assertIsNotNone(again.snapshot_id)
        self.assertEqual(self._positions(), {"TAC001": 1, "TAC002": 2})

    def test_update_position_swaps_with_current_holder(self) -> None:
        initialize_order(self.db, GROUP, _roster(10))

        result = update_member_position(self.db, GROUP, "TAC003", 7)

        self.assertIsNotNone(result)
        self.assertEqual(result.old_position, 3)
        self.assertEqual(result.swapped_with_member_id, "TAC007")
        positions = self._positions()
        self.assertEqual(positions["TAC003"], 7)
        self.assertEqual(positions["TAC007"], 3)
        self.assertEqual(sorted(positions.values()), list(range(1, 11)))
        latest = list_history(self.db, GROUP, limit=1)[0]
        self.assertEqual(latest.action, "manual")
        self.assertEqual(latest.affected_count, 2)

    def test_update_position_to_free_slot_and_invalid_inputs(self) -> None:
        initialize_order(self.db, GROUP, _roster(3))

        moved = update_member_position(self.db, GROUP, "tac001", 12)
        self.assertIsNone(moved.swapped_with_member_id)
        self.assertEqual(self._positions()["TAC001"], 12)

        self.assertIsNone(update_member_position(self.db, GROUP, "TAC404", 2))
        with self.assertRaises(ValueError):
            update_member_position(self.db, GROUP, "TAC002", 0)

    def test_update_position_from_missing_slot_moves_holder_to_the_end(self) -> None:
        initialize_order(self.db, GROUP, _roster(3))
        orphan = get_member_entry(self.db, GROUP, "TAC001")
        orphan.position = None
        self.db.commit()

        result = update_member_position(self.db, GROUP, "TAC001", 2)

        self.assertIsNone(result.old_position)
        self.assertEqual(result.swapped_with_member_id, "TAC002")
        self.assertEqual(self._positions(), {"TAC001": 2, "TAC003": 3, "TAC002": 4})

    def test_integrity_pass_reports_then_repairs_and_is_idempotent(self) -> None:
        initialize_order(self.db, GROUP, _roster(5))
        first = get_member_entry(self.db, GROUP, "TAC001")
        second = get_member_entry(self.db, GROUP, "TAC002")
        third = get_member_entry(self.db, GROUP, "TAC003")
        second.position = 1
        second.last_updated_at = utcnow() + timedelta(minutes=5)
        third.position = None
        self.db.commit()

        report = validate_and_repair_order(self.db, GROUP, auto_repair=False)
        self.assertFalse(report.is_healthy)
        self.assertEqual(report.duplicate_positions[0].position, 1)
        self.assertEqual(sorted(report.duplicate_positions[0].member_ids), ["TAC001", "TAC002"])
        self.assertEqual(report.orphaned_member_ids, ["TAC003"])
        self.assertEqual(report.repaired_count, 0)
        self.db.refresh(first)
        self.assertEqual(first.position, 1)

        repaired = validate_and_repair_order(self.db, GROUP)
        self.assertEqual(repaired.repaired_count, 2)
        self.assertEqual(
            self._positions(),
            {"TAC002": 1, "TAC004": 4, "TAC005": 5, "TAC001": 6, "TAC003": 7},
        )
        self.assertTrue(list_history(self.db, GROUP, limit=1)[0].description.startswith("Integrity check"))

        history_count = len(list_history(self.db, GROUP))
        second_pass = validate_and_repair_order(self.db, GROUP)
        self.assertTrue(second_pass.is_healthy)
        self.assertEqual(second_pass.repaired_count, 0)
        self.assertEqual(len(list_history(self.db, GROUP)), history_count)

    def test_batch_update_repairs_collisions_it_creates(self) -> None:
        initialize_order(self.db, GROUP, _roster(4))

        result = batch_update_positions(
            self.db,
            GROUP,
            [PositionUpdate(member_id="TAC004", position=1), PositionUpdate(member_id="TAC999", position=2)],
        )

        self.assertEqual(result.updated_count, 1)
        self.assertEqual(result.skipped_member_ids, ["TAC999"])
        self.assertEqual(result.integrity.repaired_count, 1)
        positions = self._positions()
        self.assertEqual(len(set(positions.values())), 4)
        self.assertEqual(positions["TAC004"], 1)
        self.assertEqual(get_snapshot_for_history(self.db, result.history_entry_id).snapshot_id, result.snapshot_id)
        self.assertEqual(list_history(self.db, GROUP, limit=1)[0].entry_id, result.history_entry_id)

    def test_snapshot_restore_round_trip(self) -> None:
        initialize_order(self.db, GROUP, _roster(3))
        batch = batch_update_positions(
            self.db,
            GROUP,
            [PositionUpdate(member_id="TAC003", position=1), PositionUpdate(member_id="TAC001", position=3)],
            action="ai-reorder",
        )
        self.assertEqual(self._positions(), {"TAC003": 1, "TAC002": 2, "TAC001": 3})

        restored = restore_snapshot(self.db, batch.snapshot_id)

        self.assertEqual(restored.restored_count, 3)
        self.assertEqual(self._positions(), {"TAC001": 1, "TAC002": 2, "TAC003": 3})
        self.assertEqual(list_history(self.db, GROUP, limit=1)[0].action, "reset")

        restore_snapshot(self.db, restored.undo_snapshot_id)
        self.assertEqual(self._positions(), {"TAC003": 1, "TAC002": 2, "TAC001": 3})
        self.assertIsNone(restore_snapshot(self.db, "snapshot-missing"))

    def test_snapshots_are_pruned_to_retention(self) -> None:
        initialize_order(self.db, GROUP, _roster(2))
        created = [create_snapshot(self.db, GROUP, f"history-{index}") for index in range(7)]

        snapshots = list_snapshots(self.db, GROUP)

        self.assertEqual(len(snapshots), 5)
        self.assertEqual(snapshots[0].snapshot_id, created[-1])
        self.assertEqual({snapshot.snapshot_id for snapshot in snapshots}, set(created[2:]))
        self.assertEqual(snapshots[0].member_count, 2)

    def test_sync_appends_new_and_reactivates_returning_members(self) -> None:
        roster = _roster(4)
        initialize_order(self.db, GROUP, roster[:3])

        result = sync_with_roster(self.db, GROUP, [roster[0], roster[2], roster[3]], deactivate_missing=True)

        self.assertEqual(result.new_member_ids, ["TAC004"])
        self.assertEqual(result.existing_member_ids, ["TAC001", "TAC003"])
        self.assertEqual(result.deactivated_member_ids, ["TAC002"])
        self.assertEqual(self._positions(), {"TAC001": 1, "TAC003": 3, "TAC004": 4})

        returning = sync_with_roster(self.db, GROUP, roster)
        self.assertEqual(returning.new_member_ids, [])
        self.assertEqual(self._positions(), {"TAC001": 1, "TAC002": 2, "TAC003": 3, "TAC004": 4})
        self.assertEqual(get_group_metadata(self.db, GROUP).total_members, 4)

    def test_reactivated_member_reclaiming_taken_slot_is_repaired(self) -> None:
        roster = _roster(3)
        initialize_order(self.db, GROUP, roster)
        self.assertEqual(deactivate_members(self.db, GROUP, ["TAC002"]), 1)
        update_member_position(self.db, GROUP, "TAC003", 2)

        sync_with_roster(self.db, GROUP, roster)

        positions = self._positions()
        self.assertEqual(sorted(positions.values()), [1, 2, 3])
        self.assertTrue(validate_and_repair_order(self.db, GROUP).is_healthy)

    def test_reset_follows_roster_and_keeps_first_seen(self) -> None:
        roster = _roster(3)
        initialize_order(self.db, GROUP, roster)
        first_seen = get_member_entry(self.db, GROUP, "TAC001").first_seen_at
        update_member_position(self.db, GROUP, "TAC001", 3)

        result = reset_order_from_roster(self.db, GROUP, [roster[2], roster[0], roster[1]])

        self.assertEqual(result.reset_count, 3)
        self.assertEqual(self._positions(), {"TAC003": 1, "TAC001": 2, "TAC002": 3})
        self.assertEqual(get_member_entry(self.db, GROUP, "TAC001").first_seen_at, first_seen)
        self.assertEqual(list_history(self.db, GROUP, limit=1)[0].action, "reset")

    def test_members_first_seen_by_month(self) -> None:
        initialize_order(self.db, GROUP, _roster(2))

        self.assertEqual(len(list_members_first_seen_in(self.db, GROUP)), 2)
        self.assertEqual(list_members_first_seen_in(self.db, GROUP, "1999-01"), [])

    def test_delete_group_data_removes_everything(self) -> None:
        initialize_order(self.db, GROUP, _roster(2))
        initialize_order(self.db, "assembly-south", _roster(1))
        update_member_position(self.db, GROUP, "TAC001", 2)

        self.assertTrue(delete_group_data(self.db, GROUP))

        self.assertEqual(get_ordered_members(self.db, GROUP), [])
        self.assertEqual(list_history(self.db, GROUP), [])
        self.assertEqual(list_snapshots(self.db, GROUP), [])
        self.assertIsNone(get_group_metadata(self.db, GROUP))
        self.assertFalse(delete_group_data(self.db, GROUP))
        self.assertEqual(len(get_ordered_members(self.db, "assembly-south")), 1)
        remaining = self.db.scalars(select(OrderEntry.group_key).distinct()).all()
        self.assertEqual(remaining, ["assembly-south"])


if __name__ == "__main__":
    unittest.main()
