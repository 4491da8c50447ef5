"""Remember/schedule ledgers."""

from jabber.ledger.models import MemoryNote, ScheduleEntry
from jabber.ledger.store import LedgerStore

__all__ = ["LedgerStore", "MemoryNote", "ScheduleEntry"]
