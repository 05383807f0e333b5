# services/exceptions.py
"""
Service-layer errors.

Everything derives from ValueError so routers can keep catching ValueError
for "bad request" style failures; subclasses let them pick a status code.
"""


class LedgerError(ValueError):
     """Base class for ledger and payload workflow errors."""


class CanonicalizationError(LedgerError):
     """Payload contains a value that has no canonical encoding."""


class SnapshotValidationError(LedgerError):
     """Snapshot source record is missing a required field or has a bad value."""


class PayloadReferenceError(LedgerError):
     """A ledger entry must reference exactly one payload (prediction or note)."""


class TransactionIdCollisionError(LedgerError):
     """The generated tx_id already exists; retry with a fresh one."""

     def __init__(self, tx_id: str):
          super().__init__(f"Ledger transaction id already exists: {tx_id}")
          self.tx_id = tx_id


class LedgerImmutableError(LedgerError):
     """Ledger rows are append-only."""


class NoteFinalizedError(LedgerError):
     """Finalized consultation notes cannot be edited."""


class ConsentRequestError(LedgerError):
     """Consent request rejected (wrong role or unknown patient)."""
