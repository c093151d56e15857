"""Optional external attestation of material content hashes."""

from .client import LedgerClient, LedgerResult, LedgerStatus, build_ledger_client

__all__ = ["LedgerClient", "LedgerResult", "LedgerStatus", "build_ledger_client"]
