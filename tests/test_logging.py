import json
import logging

from logging_config import AuditLogger, StructuredFormatter


def test_structured_formatter_emits_json():
    record = logging.LogRecord("healthchain.audit", logging.INFO, __file__, 10, "%s: %s", ("A", "b"), None)
    record.extra_fields = {"event_type": "A", "tx_id": "tx_abc"}

    data = json.loads(StructuredFormatter().format(record))

    assert data["message"] == "A: b"
    assert data["level"] == "INFO"
    assert data["tx_id"] == "tx_abc"
    assert data["timestamp"].endswith("Z")


def test_invalid_verifications_log_a_warning(caplog):
    audit = AuditLogger("healthchain.audit.test")
    with caplog.at_level(logging.INFO, logger="healthchain.audit.test"):
        audit.verification("tx_abc", 7, "valid")
        audit.verification("tx_abc", 7, "invalid")

    assert [r.levelno for r in caplog.records] == [logging.INFO, logging.WARNING]
    assert caplog.records[1].extra_fields == {
        "event_type": "LEDGER_VERIFICATION",
        "tx_id": "tx_abc",
        "requester_id": 7,
        "status": "invalid",
    }
