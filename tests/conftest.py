import os

# Must be set before config/database are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("BREVO_API_KEY", None)
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_JSON", "false")

import pytest

from database import SessionLocal, engine, get_session_context
from models import Base, User, UserRole
from security import create_access_token
from services.access_service import Requester
from services.prediction_service import PredictionService


@pytest.fixture(autouse=True)
def _reset_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def _add_user(email, role, full_name):
    with get_session_context() as s:
        user = User(email=email, password="x", full_name=full_name, role=role)
        s.add(user)
        s.flush()
        return user.id


@pytest.fixture
def patient_id():
    return _add_user("patient@example.com", UserRole.PATIENT, "Pat Ient")


@pytest.fixture
def other_patient_id():
    return _add_user("other@example.com", UserRole.PATIENT, "Oth Er")


@pytest.fixture
def doctor_id():
    return _add_user("doctor@example.com", UserRole.DOCTOR, "Doc Tor")


@pytest.fixture
def second_doctor_id():
    return _add_user("doctor2@example.com", UserRole.DOCTOR, "Sec Ond")


@pytest.fixture
def patient(patient_id):
    return Requester(id=patient_id, role=UserRole.PATIENT)


@pytest.fixture
def other_patient(other_patient_id):
    return Requester(id=other_patient_id, role=UserRole.PATIENT)


@pytest.fixture
def doctor(doctor_id):
    return Requester(id=doctor_id, role=UserRole.DOCTOR)


@pytest.fixture
def second_doctor(second_doctor_id):
    return Requester(id=second_doctor_id, role=UserRole.DOCTOR)


def auth(requester):
    return {"Authorization": f"Bearer {create_access_token(requester.id, requester.role)}"}


VITALS = {
    "heart_rate": 76,
    "systolic_bp": 126,
    "diastolic_bp": 82,
    "glucose_mgdl": 108,
    "temperature_c": 36.9,
}


def save_prediction(db, requester, risk=24, category="Low", score=76, patient_id=None):
    return PredictionService.save_prediction(
        db,
        requester,
        input=dict(VITALS),
        risk_percentage=risk,
        risk_category=category,
        health_score=score,
        patient_id=patient_id,
    )
