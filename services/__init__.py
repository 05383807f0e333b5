# services/__init__.py
from .canonical import canonicalize
from .hashing import sha256_hex, content_hash
from .snapshots import PayloadKind, build_snapshot, format_timestamp
from .ledger_service import (
     PayloadRef,
     LedgerMetadata,
     generate_tx_id,
     get_previous_hash,
     build_entry,
     append_entry,
     anchor_payload,
     anchor_prediction,
     anchor_note,
     get_by_transaction_id,
     get_metadata_only,
     list_entries_for_subject,
     verify_subject_chain,
)
from .verification_service import (
     VerifyStatus,
     VerificationResult,
     verify_transaction,
     request_access,
     ConsentPoller,
)

__all__ = [
     "canonicalize",
     "sha256_hex",
     "content_hash",
     "PayloadKind",
     "build_snapshot",
     "format_timestamp",
     "PayloadRef",
     "LedgerMetadata",
     "generate_tx_id",
     "get_previous_hash",
     "build_entry",
     "append_entry",
     "anchor_payload",
     "anchor_prediction",
     "anchor_note",
     "get_by_transaction_id",
     "get_metadata_only",
     "list_entries_for_subject",
     "verify_subject_chain",
     "VerifyStatus",
     "VerificationResult",
     "verify_transaction",
     "request_access",
     "ConsentPoller",
]
