"""Ledger collaborator."""

from .base import Ledger, next_occurrence
from .sqlite_ledger import SQLiteLedger

__all__ = ["Ledger", "SQLiteLedger", "next_occurrence"]
