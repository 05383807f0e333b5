import pytest

from models import LedgerTransaction
from services.exceptions import NoteFinalizedError, SnapshotValidationError
from services.hashing import content_hash
from services.ledger_service import reconstruct_snapshot
from services.note_service import NoteService
from services.verification_service import VerifyStatus, verify_transaction

from conftest import save_prediction


def draft(db, doctor, patient, appointment_id=12, diagnosis="Mild hypertension", recommendations=None):
    return NoteService.save_draft(
        db,
        doctor,
        appointment_id=appointment_id,
        patient_id=patient.id,
        diagnosis=diagnosis,
        recommendations=recommendations,
    )


def test_draft_is_created_then_updated(db, doctor, patient):
    note = draft(db, doctor, patient, diagnosis="  Mild hypertension ", recommendations="")
    assert note.diagnosis == "Mild hypertension"
    assert note.recommendations is None
    assert note.is_final is False

    updated = draft(db, doctor, patient, diagnosis="Stage 1 hypertension", recommendations="Reduce sodium")
    assert updated.id == note.id
    assert updated.diagnosis == "Stage 1 hypertension"


def test_only_doctors_write_notes(db, patient):
    with pytest.raises(PermissionError):
        draft(db, patient, patient)


def test_draft_for_unknown_patient(db, doctor):
    with pytest.raises(SnapshotValidationError):
        draft(db, doctor, doctor)


def test_another_doctors_note_is_off_limits(db, doctor, second_doctor, patient):
    note = draft(db, doctor, patient)

    assert draft(db, second_doctor, patient) is None
    assert NoteService.finalize_note(db, second_doctor, note.id) is None
    assert NoteService.get_note(db, second_doctor, note.id) is None


def test_finalize_anchors_note(db, doctor, patient):
    note = draft(db, doctor, patient, recommendations="Recheck in 4 weeks")

    finalized, entry = NoteService.finalize_note(db, doctor, note.id)

    assert finalized.is_final is True
    assert finalized.finalized_at is not None
    assert entry.note_id == note.id
    assert entry.prediction_id is None
    assert entry.appointment_id == 12
    assert entry.created_by == doctor.id
    assert entry.patient_id == patient.id
    assert entry.payload_kind == "note"

    snapshot = reconstruct_snapshot(db, entry)
    assert snapshot["diagnosis"] == "Mild hypertension"
    assert snapshot["recommendations"] == "Recheck in 4 weeks"
    assert content_hash(snapshot) == entry.payload_hash


def test_note_joins_patient_chain(db, doctor, patient):
    _, prediction_entry = save_prediction(db, patient)
    note = draft(db, doctor, patient)

    _, note_entry = NoteService.finalize_note(db, doctor, note.id)

    assert note_entry.prev_hash == prediction_entry.payload_hash


def test_finalize_is_idempotent(db, doctor, patient):
    note = draft(db, doctor, patient)
    _, first = NoteService.finalize_note(db, doctor, note.id)
    _, second = NoteService.finalize_note(db, doctor, note.id)

    assert second.tx_id == first.tx_id
    assert db.query(LedgerTransaction).count() == 1


def test_finalized_note_refuses_edits(db, doctor, patient):
    note = draft(db, doctor, patient)
    NoteService.finalize_note(db, doctor, note.id)

    with pytest.raises(NoteFinalizedError):
        draft(db, doctor, patient, diagnosis="Something else")

    note.diagnosis = "Rewritten"
    with pytest.raises(NoteFinalizedError):
        db.flush()


def test_note_verification(db, doctor, second_doctor, patient, other_patient):
    note = draft(db, doctor, patient)
    _, entry = NoteService.finalize_note(db, doctor, note.id)

    assert verify_transaction(db, entry.tx_id, patient).status == VerifyStatus.VALID
    # The authoring doctor can always verify what they anchored
    assert verify_transaction(db, entry.tx_id, doctor).status == VerifyStatus.VALID
    assert verify_transaction(db, entry.tx_id, other_patient).status == VerifyStatus.NO_ACCESS

    result = verify_transaction(db, entry.tx_id, second_doctor)
    assert result.status == VerifyStatus.CONSENT_REQUIRED
    assert result.metadata.appointment_id == 12


def test_get_note_access(db, doctor, patient, other_patient):
    note = draft(db, doctor, patient)

    assert NoteService.get_note(db, patient, note.id).id == note.id
    assert NoteService.get_note(db, doctor, note.id).id == note.id
    assert NoteService.get_note(db, other_patient, note.id) is None
    assert NoteService.get_note(db, doctor, 9999) is None
