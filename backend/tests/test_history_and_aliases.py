"""Service-level tests for the order history log and learned aliases."""

from __future__ import annotations

import unittest

from sqlalchemy import create_engine, delete
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgermatch.models.base import Base
from ledgermatch.models.learned_alias import LearnedAlias
from ledgermatch.models.order_history_entry import OrderHistoryEntry
from ledgermatch.services.aliases import (
    alias_map,
    delete_alias,
    list_aliases,
    lookup_alias,
    record_alias_use,
    save_alias,
)
from ledgermatch.services.history import append_history_entry, get_history_entry, list_history

GROUP = "assembly-east"


class HistoryAndAliasTests(unittest.TestCase):
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
        self.db.execute(delete(LearnedAlias))
        self.db.execute(delete(OrderHistoryEntry))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def test_history_is_listed_newest_first_with_limit(self) -> None:
        for index in range(4):
            append_history_entry(self.db, GROUP, "manual", f"change {index}", 1)
        append_history_entry(self.db, "other-group", "reset", "elsewhere", 3)
        self.db.commit()

        entries = list_history(self.db, GROUP)
        self.assertEqual([entry.description for entry in entries], ["change 3", "change 2", "change 1", "change 0"])
        self.assertEqual(len(list_history(self.db, GROUP, limit=2)), 2)
        self.assertEqual(get_history_entry(self.db, entries[0].entry_id).description, "change 3")

    def test_history_entry_uses_preallocated_id(self) -> None:
        entry_id = append_history_entry(self.db, GROUP, "ai-reorder", "applied", 5, entry_id="fixed-id")
        self.db.commit()
        self.assertEqual(entry_id, "fixed-id")
        self.assertEqual(get_history_entry(self.db, "fixed-id").affected_count, 5)

    def test_history_rejects_unknown_action_and_negative_values(self) -> None:
        with self.assertRaises(ValueError):
            append_history_entry(self.db, GROUP, "rename", "nope", 1)
        with self.assertRaises(ValueError):
            append_history_entry(self.db, GROUP, "manual", "nope", -1)
        with self.assertRaises(ValueError):
            list_history(self.db, GROUP, limit=-1)

    def test_saving_same_alias_twice_bumps_usage(self) -> None:
        first = save_alias(self.db, GROUP, "Kwaku  B.", "TAC003", "Kwaku Boateng")
        second = save_alias(self.db, GROUP, "kwaku b.", "TAC003", "Kwaku Boateng")

        self.assertEqual(first.id, second.id)
        self.assertEqual(second.usage_count, 2)
        self.assertEqual(second.normalized_text, "kwaku b.")
        self.assertEqual(alias_map(self.db, GROUP), {"kwaku b.": "TAC003"})
        self.assertEqual(alias_map(self.db, "other-group"), {})

    def test_blank_alias_text_is_ignored(self) -> None:
        self.assertIsNone(save_alias(self.db, GROUP, "   ", "TAC003", "Kwaku Boateng"))
        self.assertIsNone(save_alias(self.db, GROUP, "Kwaku", " ", "Kwaku Boateng"))
        self.assertEqual(list_aliases(self.db, GROUP), [])

    def test_alias_can_be_redirected_reused_and_deleted(self) -> None:
        save_alias(self.db, GROUP, "Ama O.", "TAC002", "Ama Owusu")
        redirected = save_alias(self.db, GROUP, "Ama O.", "TAC012", "Ama Osei")
        self.assertEqual(redirected.member_id, "TAC012")

        reused = record_alias_use(self.db, GROUP, "AMA O.")
        self.db.commit()
        self.assertEqual(reused.usage_count, 3)
        self.assertIsNone(record_alias_use(self.db, GROUP, "Unknown"))

        self.assertTrue(delete_alias(self.db, GROUP, redirected.id))
        self.assertFalse(delete_alias(self.db, GROUP, redirected.id))
        self.assertIsNone(lookup_alias(self.db, GROUP, "Ama O."))


if __name__ == "__main__":
    unittest.main()
