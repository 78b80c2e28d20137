"""Seed a demo group order and run one ledger matching pass against it.

Usage (from repository root):
    python backend/scripts/seed_demo.py

Usage (from backend directory):
    python scripts/seed_demo.py
    # or
    python -m scripts.seed_demo
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make `ledgermatch` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from ledgermatch.db.session import SessionLocal
from ledgermatch.matching.types import CandidateName, IdentityRecord
from ledgermatch.services.matching import match_candidates, proposed_positions
from ledgermatch.services.order_store import delete_group_data, initialize_order
from ledgermatch.services.reorder import apply_reorder


DEFAULT_GROUP_KEY = "demo-assembly"


def build_demo_roster() -> list[IdentityRecord]:
    """Return a deterministic five-member roster."""

    rows = [
        ("TAC001", "Kwame", "Mensah", "Kofi", "Elder"),
        ("TAC002", "Ama", "Owusu", "", "Deaconess"),
        ("TAC003", "Yaw", "Boateng", "", ""),
        ("TAC004", "Akosua", "Asante", "Adwoa", ""),
        ("TAC005", "Kojo", "Appiah", "", "Deacon"),
    ]
    return [
        IdentityRecord(primary_id=member_id, first_name=first, surname=surname, other_names=other, title=title)
        for member_id, first, surname, other, title in rows
    ]


def build_demo_ledger() -> list[CandidateName]:
    """Handwritten names as they appear down the tithe book, misspellings included."""

    names = ["Yaw Boatent", "Kwame Mensa", "Akosua Asantey", "Ama Owusu", "Kojo Apiah"]
    return [CandidateName(text=name, position_hint=index) for index, name in enumerate(names, start=1)]


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Seed a demo group order and match a ledger page.")
    parser.add_argument(
        "--group-key",
        default=DEFAULT_GROUP_KEY,
        help=f"Group key to seed (default: {DEFAULT_GROUP_KEY})",
    )
    parser.add_argument(
        "--no-reset",
        action="store_true",
        help="Do not delete existing records for the group before seeding.",
    )
    return parser.parse_args()


def main() -> None:
    """Seed demo data and print a short summary."""

    args = parse_args()
    group_key: str = args.group_key
    roster = build_demo_roster()

    with SessionLocal() as db:
        if not args.no_reset:
            delete_group_data(db, group_key)

        seeded = initialize_order(db, group_key, roster)
        report = match_candidates(db, group_key, build_demo_ledger(), roster)
        applied = apply_reorder(db, group_key, proposed_positions(report))

    print("Seed complete")
    print(f"group_key={group_key}")
    print(f"members_seeded={seeded.member_count}")
    print(f"names_matched={len(report.matches)}")
    print(f"names_unmatched={len(report.unmatched)}")
    print(f"positions_moved={applied.updated_count if applied else 0}")
    print()
    print("Inspect:")
    print(f"  GET /groups/{group_key}/order")
    print(f"  GET /groups/{group_key}/history")
    print(f"  GET /groups/{group_key}/snapshots")


if __name__ == "__main__":
    main()
