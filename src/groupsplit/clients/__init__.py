"""Remote service clients."""

from .ledger import LedgerClient

__all__ = ["LedgerClient"]
