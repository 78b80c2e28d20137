"""HTTP-level tests for the order, history, alias and matching routes."""

from __future__ import annotations

import unittest

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledgermatch.db.dependencies import get_db
from ledgermatch.main import app
from ledgermatch.models.base import Base

GROUP = "assembly-api"

ROSTER = [
    {"primary_id": "TAC001", "first_name": "Kwame", "surname": "Mensah"},
    {"primary_id": "TAC002", "first_name": "Ama", "surname": "Owusu"},
    {"primary_id": "TAC003", "first_name": "Yaw", "surname": "Boateng"},
]


class ApiRouteTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(self.engine)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def _initialize(self) -> None:
        response = self.client.post(f"/groups/{GROUP}/order/initialize", json={"records": ROSTER})
        self.assertEqual(response.status_code, 200)

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.json(), {"status": "ok"})

    def test_initialize_move_and_undo(self) -> None:
        self._initialize()

        moved = self.client.patch(f"/groups/{GROUP}/order/members/TAC001", json={"position": 3})
        self.assertEqual(moved.status_code, 200)
        self.assertEqual(moved.json()["data"]["swapped_with_member_id"], "TAC003")

        order = self.client.get(f"/groups/{GROUP}/order").json()["data"]
        self.assertEqual([entry["member_id"] for entry in order], ["TAC003", "TAC002", "TAC001"])

        batch = self.client.post(
            f"/groups/{GROUP}/order/batch",
            json={"updates": [{"member_id": "TAC002", "position": 9}]},
        ).json()["data"]
        restored = self.client.post(f"/snapshots/{batch['snapshot_id']}/restore")
        self.assertEqual(restored.status_code, 200)
        order = self.client.get(f"/groups/{GROUP}/order").json()["data"]
        self.assertEqual([entry["position"] for entry in order], [1, 2, 3])

        history = self.client.get(f"/groups/{GROUP}/history").json()["data"]
        self.assertEqual(history[0]["action"], "reset")
        snapshots = self.client.get(f"/groups/{GROUP}/snapshots").json()["data"]
        self.assertEqual(len(snapshots), 2)
        self.assertEqual(len(snapshots[0]["entries"]), 3)

    def test_missing_resources_return_404(self) -> None:
        self._initialize()

        self.assertEqual(
            self.client.patch(f"/groups/{GROUP}/order/members/TAC999", json={"position": 1}).status_code,
            404,
        )
        self.assertEqual(self.client.post("/snapshots/snapshot-missing/restore").status_code, 404)
        self.assertEqual(self.client.get("/history/none/snapshot").status_code, 404)
        self.assertEqual(self.client.delete(f"/groups/{GROUP}/aliases/99").status_code, 404)
        self.assertEqual(self.client.get("/groups/unknown-group/order/meta").status_code, 404)

    def test_invalid_position_is_rejected(self) -> None:
        self._initialize()
        response = self.client.patch(f"/groups/{GROUP}/order/members/TAC001", json={"position": 0})
        self.assertEqual(response.status_code, 422)

    def test_match_confirm_and_alias_listing(self) -> None:
        self._initialize()

        report = self.client.post(
            f"/groups/{GROUP}/match",
            json={
                "candidates": [{"text": "Kwame Mensa", "position_hint": 1}, {"text": "Ebo Asamoah"}],
                "roster": ROSTER,
            },
        ).json()["data"]
        self.assertEqual(report["matches"][0]["record"]["primary_id"], "TAC001")
        self.assertEqual(report["unmatched"][0]["candidate"]["text"], "Ebo Asamoah")

        confirmed = self.client.post(
            f"/groups/{GROUP}/match/confirm",
            json={"raw_text": "Ebo Asamoah", "record": ROSTER[2]},
        )
        self.assertEqual(confirmed.status_code, 200)
        aliases = self.client.get(f"/groups/{GROUP}/aliases").json()["data"]
        self.assertEqual([alias["normalized_text"] for alias in aliases], ["ebo asamoah"])

        deleted = self.client.delete(f"/groups/{GROUP}/aliases/{aliases[0]['id']}")
        self.assertEqual(deleted.json()["data"], {"id": aliases[0]["id"], "deleted": True})

    def test_reconcile(self) -> None:
        response = self.client.post(
            "/reconcile",
            json={
                "new_roster": [{**ROSTER[0], "attributes": {"phone_number": "0242222222"}}],
                "master_roster": ROSTER,
            },
        )
        data = response.json()["data"]
        self.assertEqual(len(data["changed"]), 1)
        self.assertEqual(data["changed"][0]["changes"][0]["field"], "phone_number")
        self.assertEqual(len(data["missing_from_upload"]), 2)

    def test_unknown_attribute_is_a_validation_error(self) -> None:
        response = self.client.post(
            "/reconcile",
            json={"new_roster": [{"primary_id": "TAC1", "attributes": {"shoe_size": "42"}}], "master_roster": []},
        )
        self.assertEqual(response.status_code, 422)

    def test_export_and_delete_group(self) -> None:
        self._initialize()

        exported = self.client.get(f"/groups/{GROUP}/order/export").json()["data"]
        self.assertEqual(exported["member_count"], 3)
        imported = self.client.post(f"/groups/{GROUP}/order/import", json=exported).json()["data"]
        self.assertTrue(imported["success"])

        self.assertEqual(self.client.delete(f"/groups/{GROUP}").status_code, 200)
        self.assertEqual(self.client.get(f"/groups/{GROUP}/order").json()["data"], [])
        self.assertEqual(self.client.get("/groups").json()["data"], [])


if __name__ == "__main__":
    unittest.main()
