import asyncio

import pytest
from sqlalchemy import delete, update

from models import ConsentStatus, DoctorPatientConsent, Prediction
from services.consent_service import get_consent, request_patient_consent, set_consent_status
from services.exceptions import ConsentRequestError
from services.notification_service import list_notifications, mark_read
from services.verification_service import (
    ConsentPoller,
    VerifyStatus,
    request_access,
    verify_transaction,
)

from conftest import save_prediction as save


def consent_notifications(db, user_id):
    return [n for n in list_notifications(db, user_id) if n.type == "consent"]


def test_anonymous_requester_needs_auth(db, patient):
    _, entry = save(db, patient)
    result = verify_transaction(db, entry.tx_id, None)
    assert result.status == VerifyStatus.AUTH_REQUIRED
    assert result.entry is None


def test_patient_verifies_own_entry(db, patient):
    _, entry = save(db, patient)

    result = verify_transaction(db, entry.tx_id, patient)

    assert result.status == VerifyStatus.VALID
    assert result.can_show_report
    assert result.entry.tx_id == entry.tx_id
    assert result.payload["score"] == 76
    assert result.payload["patient_id"] == patient.id


def test_verification_is_repeatable(db, patient):
    _, entry = save(db, patient)
    first = verify_transaction(db, entry.tx_id, patient)
    second = verify_transaction(db, entry.tx_id, patient)
    assert first.status == second.status == VerifyStatus.VALID
    assert first.payload == second.payload


def test_tampered_payload_is_invalid(db, patient):
    prediction, entry = save(db, patient)
    db.execute(update(Prediction).where(Prediction.id == prediction.id).values(health_score=99))

    result = verify_transaction(db, entry.tx_id, patient)

    assert result.status == VerifyStatus.INVALID
    assert result.can_show_report
    assert result.payload["score"] == 99


def test_missing_payload_looks_like_no_access(db, patient):
    prediction, entry = save(db, patient)
    db.execute(delete(Prediction).where(Prediction.id == prediction.id))

    result = verify_transaction(db, entry.tx_id, patient)

    assert result.status == VerifyStatus.NO_ACCESS
    assert not result.can_show_report


def test_unauthorized_and_missing_are_indistinguishable(db, patient, other_patient):
    _, entry = save(db, patient)

    existing = verify_transaction(db, entry.tx_id, other_patient)
    missing = verify_transaction(db, "tx_doesnotexs", other_patient)

    assert existing == missing
    assert existing.status == VerifyStatus.NO_ACCESS


def test_doctor_on_missing_entry_has_no_access(db, doctor):
    assert verify_transaction(db, "tx_doesnotexs", doctor).status == VerifyStatus.NO_ACCESS


def test_doctor_without_consent_sees_metadata_only(db, patient, doctor):
    _, entry = save(db, patient)

    result = verify_transaction(db, entry.tx_id, doctor)

    assert result.status == VerifyStatus.CONSENT_REQUIRED
    assert result.entry is None
    assert result.payload is None
    assert result.metadata.patient_id == patient.id
    assert result.metadata.payload_kind.value == "prediction"
    assert result.integrity_verified is True


def test_metadata_only_access_still_detects_tampering(db, patient, doctor):
    prediction, entry = save(db, patient)
    db.execute(update(Prediction).where(Prediction.id == prediction.id).values(risk_category="High"))

    result = verify_transaction(db, entry.tx_id, doctor)

    assert result.status == VerifyStatus.CONSENT_REQUIRED
    assert result.integrity_verified is False


def test_consent_flow_to_valid(db, patient, doctor):
    _, entry = save(db, patient)
    assert verify_transaction(db, entry.tx_id, doctor).status == VerifyStatus.CONSENT_REQUIRED

    pending = request_access(db, entry.tx_id, doctor)
    assert pending.status == VerifyStatus.CONSENT_PENDING
    assert verify_transaction(db, entry.tx_id, doctor).status == VerifyStatus.CONSENT_PENDING

    consent = get_consent(db, patient.id, doctor.id)
    set_consent_status(db, patient, consent.id, ConsentStatus.GRANTED)

    granted = verify_transaction(db, entry.tx_id, doctor)
    assert granted.status == VerifyStatus.VALID
    assert granted.payload["risk"]["category"] == "Low"


def test_repeated_access_requests_open_one_consent(db, patient, doctor):
    _, entry = save(db, patient)

    request_access(db, entry.tx_id, doctor)
    again = request_access(db, entry.tx_id, doctor)

    assert again.status == VerifyStatus.CONSENT_PENDING
    assert db.query(DoctorPatientConsent).count() == 1
    notifications = consent_notifications(db, patient.id)
    assert len(notifications) == 1
    assert notifications[0].title == "Doctor requested access"


def test_request_consent_reuses_existing(db, patient, doctor):
    consent, opened = request_patient_consent(db, doctor, patient.id)
    same, opened_again = request_patient_consent(db, doctor, patient.id)

    assert opened is True
    assert opened_again is False
    assert same.id == consent.id


def test_revoked_consent_is_reopened(db, patient, doctor):
    _, entry = save(db, patient)
    consent, _ = request_patient_consent(db, doctor, patient.id)
    set_consent_status(db, patient, consent.id, ConsentStatus.GRANTED)
    set_consent_status(db, patient, consent.id, ConsentStatus.REVOKED)

    assert verify_transaction(db, entry.tx_id, doctor).status == VerifyStatus.CONSENT_REQUIRED

    reopened, opened = request_patient_consent(db, doctor, patient.id)
    assert opened is True
    assert reopened.id == consent.id
    assert reopened.status == ConsentStatus.PENDING
    assert db.query(DoctorPatientConsent).count() == 1


def test_only_doctors_request_consent(db, patient, other_patient):
    with pytest.raises(ConsentRequestError):
        request_patient_consent(db, other_patient, patient.id)


def test_consent_for_unknown_patient(db, doctor):
    with pytest.raises(ConsentRequestError):
        request_patient_consent(db, doctor, 9999)


def test_patient_request_access_is_no_access(db, patient, other_patient):
    _, entry = save(db, patient)

    result = request_access(db, entry.tx_id, other_patient)

    assert result.status == VerifyStatus.NO_ACCESS
    assert db.query(DoctorPatientConsent).count() == 0


def test_only_the_patient_decides(db, patient, other_patient, doctor):
    consent, _ = request_patient_consent(db, doctor, patient.id)

    assert set_consent_status(db, other_patient, consent.id, ConsentStatus.GRANTED) is None
    assert set_consent_status(db, doctor, consent.id, ConsentStatus.GRANTED) is None
    with pytest.raises(ConsentRequestError):
        set_consent_status(db, patient, consent.id, ConsentStatus.PENDING)


def test_decision_notifies_doctor(db, patient, doctor):
    consent, _ = request_patient_consent(db, doctor, patient.id)
    set_consent_status(db, patient, consent.id, ConsentStatus.GRANTED)

    notifications = consent_notifications(db, doctor.id)
    assert [n.title for n in notifications] == ["Access granted"]

    read = mark_read(db, doctor.id, notifications[0].id)
    assert read.is_read is True
    assert list_notifications(db, doctor.id, unread_only=True) == []
    assert mark_read(db, patient.id, notifications[0].id) is None


def test_poller_returns_once_granted():
    statuses = iter([ConsentStatus.PENDING, ConsentStatus.PENDING, ConsentStatus.GRANTED])
    poller = ConsentPoller(lambda: next(statuses), interval=0.01)

    assert asyncio.run(poller.wait(timeout=5)) is True
    assert poller.checks == 3


def test_poller_times_out():
    poller = ConsentPoller(lambda: ConsentStatus.PENDING, interval=0.01)

    assert asyncio.run(poller.wait(timeout=0.05)) is False
    assert poller.checks >= 1


def test_poller_checks_once_with_zero_timeout():
    poller = ConsentPoller(lambda: None, interval=10)

    assert asyncio.run(poller.wait(timeout=0)) is False
    assert poller.checks == 1


def test_cancelled_poller_stops():
    async def scenario():
        poller = ConsentPoller(lambda: ConsentStatus.PENDING, interval=10)
        task = asyncio.create_task(poller.wait())
        await asyncio.sleep(0.05)
        poller.cancel()
        return poller, await asyncio.wait_for(task, timeout=1)

    poller, granted = asyncio.run(scenario())
    assert granted is False
    assert poller.cancelled
    assert poller.checks == 1
