"""ORM models package exports."""

from ledgermatch.models.learned_alias import LearnedAlias
from ledgermatch.models.order_entry import OrderEntry
from ledgermatch.models.order_group import OrderGroup
from ledgermatch.models.order_history_entry import OrderHistoryEntry
from ledgermatch.models.order_snapshot import OrderSnapshot

__all__ = [
    "LearnedAlias",
    "OrderEntry",
    "OrderGroup",
    "OrderHistoryEntry",
    "OrderSnapshot",
]
