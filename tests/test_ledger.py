import logging
import re

import pytest
from sqlalchemy import delete, update

from models import LedgerTransaction, Prediction
from services import ledger_service
from services.exceptions import (
    LedgerImmutableError,
    PayloadReferenceError,
    TransactionIdCollisionError,
)
from services.hashing import content_hash
from services.ledger_service import (
    PayloadRef,
    append_entry,
    build_entry,
    generate_tx_id,
    get_previous_hash,
    list_entries_for_subject,
    verify_subject_chain,
)
from services.snapshots import PayloadKind, build_snapshot

from conftest import VITALS, save_prediction as save

TX_ID_PATTERN = re.compile(r"^tx_[A-Za-z0-9_-]{10}$")


def test_generate_tx_id_shape():
    ids = {generate_tx_id() for _ in range(50)}
    assert all(TX_ID_PATTERN.match(tx_id) for tx_id in ids)
    assert len(ids) == 50


def test_genesis_then_linked(db, patient):
    assert get_previous_hash(db, patient.id) is None

    _, first = save(db, patient)
    _, second = save(db, patient, risk=61, category="Medium", score=48)

    assert first.prev_hash is None
    assert second.prev_hash == first.payload_hash
    assert get_previous_hash(db, patient.id) == second.payload_hash
    assert TX_ID_PATTERN.match(first.tx_id)
    assert first.schema_version == 1


def test_chains_are_per_patient(db, patient, other_patient):
    _, mine = save(db, patient)
    _, theirs = save(db, other_patient)

    assert mine.prev_hash is None
    assert theirs.prev_hash is None


def test_stored_hash_matches_snapshot(db, patient):
    prediction, entry = save(db, patient)

    snapshot = ledger_service.reconstruct_snapshot(db, entry)
    assert snapshot["risk"] == {"risk": 24, "category": "Low"}
    assert snapshot["patient_id"] == patient.id
    assert content_hash(snapshot) == entry.payload_hash
    assert entry.prediction_id == prediction.id
    assert entry.note_id is None


def test_payload_ref_requires_exactly_one():
    with pytest.raises(PayloadReferenceError):
        PayloadRef()
    with pytest.raises(PayloadReferenceError):
        PayloadRef(prediction_id=1, note_id=2)
    assert PayloadRef.note(3).kind.value == "note"


def test_append_rejects_two_payload_refs(db, patient):
    prediction, entry = save(db, patient)
    bad = LedgerTransaction(
        tx_id=generate_tx_id(),
        payload_hash=entry.payload_hash,
        prev_hash=entry.payload_hash,
        patient_id=patient.id,
        created_by=patient.id,
        prediction_id=prediction.id,
        note_id=1,
    )
    with pytest.raises(PayloadReferenceError):
        append_entry(db, bad)


def test_append_rejects_duplicate_tx_id(db, patient):
    prediction, entry = save(db, patient)
    duplicate = build_entry(
        db,
        subject_id=patient.id,
        author_id=patient.id,
        snapshot={"any": "thing"},
        payload_ref=PayloadRef.prediction(prediction.id),
        tx_id=entry.tx_id,
    )
    with pytest.raises(TransactionIdCollisionError) as exc:
        append_entry(db, duplicate)
    assert exc.value.tx_id == entry.tx_id


def test_anchor_retries_with_fresh_tx_id(db, patient, monkeypatch):
    _, first = save(db, patient)
    ids = iter([first.tx_id, "tx_fresh00001"])
    monkeypatch.setattr(ledger_service, "generate_tx_id", lambda length=None: next(ids))

    _, second = save(db, patient)

    assert second.tx_id == "tx_fresh00001"
    assert second.prev_hash == first.payload_hash


def test_anchor_gives_up_after_max_attempts(db, patient, monkeypatch):
    _, first = save(db, patient)
    monkeypatch.setattr(ledger_service, "generate_tx_id", lambda length=None: first.tx_id)

    with pytest.raises(TransactionIdCollisionError):
        save(db, patient)


def test_entries_cannot_be_updated(db, patient):
    _, entry = save(db, patient)
    entry.payload_hash = "0" * 64
    with pytest.raises(LedgerImmutableError):
        db.flush()


def test_entries_cannot_be_deleted(db, patient):
    _, entry = save(db, patient)
    db.delete(entry)
    with pytest.raises(LedgerImmutableError):
        db.flush()


def test_anchored_prediction_fields_are_frozen(db, patient):
    prediction, _ = save(db, patient)

    prediction.doctor_remarks = "Reviewed"
    db.flush()

    prediction.risk_percentage = 5
    with pytest.raises(LedgerImmutableError):
        db.flush()


def test_chain_verification_passes(db, patient):
    save(db, patient)
    save(db, patient, risk=61, category="Medium", score=48)

    valid, message, checked = verify_subject_chain(db, patient.id)
    assert valid is True
    assert checked == 2


def test_chain_verification_empty(db, patient):
    assert verify_subject_chain(db, patient.id) == (True, "Chain is empty (no entries)", 0)


def test_chain_verification_detects_tampering(db, patient):
    prediction, entry = save(db, patient)
    save(db, patient)

    db.execute(update(Prediction).where(Prediction.id == prediction.id).values(risk_percentage=2))

    valid, message, checked = verify_subject_chain(db, patient.id)
    assert valid is False
    assert entry.tx_id in message
    assert checked == 0


def test_chain_verification_detects_broken_link(db, patient):
    prediction, _ = save(db, patient)
    forged = build_entry(
        db,
        subject_id=patient.id,
        author_id=patient.id,
        snapshot=ledger_service.reconstruct_snapshot(db, prediction.ledger_entry),
        payload_ref=PayloadRef.prediction(prediction.id),
    )
    forged.prev_hash = "f" * 64
    append_entry(db, forged)

    valid, message, checked = verify_subject_chain(db, patient.id)
    assert valid is False
    assert message == f"Chain broken at {forged.tx_id}: prev_hash mismatch"
    assert checked == 1


def _flushed_prediction(db, patient, risk=30):
    prediction = Prediction(
        patient_id=patient.id,
        created_by=patient.id,
        input=dict(VITALS),
        risk_percentage=risk,
        risk_category="Low",
        health_score=70,
    )
    db.add(prediction)
    db.flush()
    return prediction


def _entry_for(db, patient, prediction):
    return build_entry(
        db,
        subject_id=patient.id,
        author_id=patient.id,
        snapshot=build_snapshot(PayloadKind.PREDICTION, prediction),
        payload_ref=PayloadRef.prediction(prediction.id),
    )


def test_chain_tolerates_concurrent_appends(db, patient):
    _, first = save(db, patient)
    a = _entry_for(db, patient, _flushed_prediction(db, patient))
    b = _entry_for(db, patient, _flushed_prediction(db, patient, risk=31))
    assert a.prev_hash == b.prev_hash == first.payload_hash

    append_entry(db, a)
    append_entry(db, b)

    assert verify_subject_chain(db, patient.id) == (
        True,
        "Full chain verification passed (1 out-of-order links)",
        3,
    )


def test_chain_tolerates_concurrent_genesis(db, patient):
    a = _entry_for(db, patient, _flushed_prediction(db, patient))
    b = _entry_for(db, patient, _flushed_prediction(db, patient, risk=31))
    append_entry(db, a)
    append_entry(db, b)

    valid, message, checked = verify_subject_chain(db, patient.id)
    assert valid is True
    assert "1 out-of-order links" in message
    assert checked == 2


def test_chain_verification_detects_missing_payload(db, patient):
    prediction, entry = save(db, patient)

    db.execute(delete(Prediction).where(Prediction.id == prediction.id))

    valid, message, _ = verify_subject_chain(db, patient.id)
    assert valid is False
    assert message == f"Payload not found for {entry.tx_id}"


def test_list_entries_requires_access(db, patient, other_patient, doctor):
    save(db, patient)
    save(db, patient)

    entries = list_entries_for_subject(db, patient.id, patient)
    assert len(entries) == 2
    assert entries[0].prev_hash == entries[1].payload_hash
    assert list_entries_for_subject(db, patient.id, other_patient) == []
    assert list_entries_for_subject(db, patient.id, doctor) == []
    assert list_entries_for_subject(db, patient.id, None) == []


def test_anchoring_is_audited(db, patient, caplog):
    with caplog.at_level(logging.INFO, logger="healthchain.audit"):
        _, entry = save(db, patient)

    events = [r.extra_fields for r in caplog.records if hasattr(r, "extra_fields")]
    anchored = [e for e in events if e["event_type"] == "LEDGER_ANCHORED"]
    assert anchored == [
        {
            "event_type": "LEDGER_ANCHORED",
            "tx_id": entry.tx_id,
            "patient_id": patient.id,
            "payload_kind": "prediction",
            "genesis": True,
        }
    ]
