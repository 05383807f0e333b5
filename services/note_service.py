# services/note_service.py
"""
Consultation Note Service - draft, finalize and anchor doctors' notes.
"""
from typing import Optional, Tuple

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, object_session

from models import ConsultationNote, LedgerTransaction, User, UserRole
from .access_service import Requester, can_read_subject
from .exceptions import NoteFinalizedError, SnapshotValidationError
from .ledger_service import anchor_note
from .notification_service import notify


@event.listens_for(ConsultationNote, "before_update")
def _refuse_finalized_note_edit(mapper, connection, target):
     history = inspect(target).attrs.is_final.history
     was_final = bool(history.deleted[0]) if history.deleted else bool(history.unchanged and history.unchanged[0])
     session = object_session(target)
     if was_final and (session is None or session.is_modified(target, include_collections=False)):
          raise NoteFinalizedError(f"Note {target.id} is finalized")


def _clean(text: Optional[str]) -> Optional[str]:
     return (text or "").strip() or None


class NoteService:
     """Service class for consultation-note business logic."""

     @staticmethod
     def save_draft(
          db: Session,
          requester: Requester,
          appointment_id: int,
          patient_id: int,
          diagnosis: Optional[str] = None,
          recommendations: Optional[str] = None,
     ) -> Optional[ConsultationNote]:
          """
          Create or update the draft note for an appointment.

          Returns None when the appointment's note belongs to another doctor.

          Raises:
               PermissionError: requester is not a doctor
               SnapshotValidationError: patient does not exist
               NoteFinalizedError: the note is already final
          """
          if not requester.is_doctor:
               raise PermissionError("Only doctors can write consultation notes")

          note = db.query(ConsultationNote).filter(ConsultationNote.appointment_id == appointment_id).first()
          if note is None:
               patient = db.get(User, patient_id)
               if patient is None or patient.role != UserRole.PATIENT:
                    raise SnapshotValidationError(f"Patient {patient_id} not found")
               note = ConsultationNote(
                    appointment_id=appointment_id,
                    doctor_id=requester.id,
                    patient_id=patient_id,
               )
               db.add(note)
          elif note.doctor_id != requester.id:
               return None
          elif note.is_final:
               raise NoteFinalizedError(f"Note {note.id} is finalized")
          elif note.patient_id != patient_id:
               raise SnapshotValidationError("Appointment belongs to a different patient")

          note.diagnosis = _clean(diagnosis)
          note.recommendations = _clean(recommendations)
          db.flush()
          return note

     @staticmethod
     def finalize_note(
          db: Session,
          requester: Requester,
          note_id: int,
     ) -> Optional[Tuple[ConsultationNote, LedgerTransaction]]:
          """
          Finalize a draft and anchor it. Finalizing an already-anchored note
          returns the existing entry.

          Returns None when the note does not exist or belongs to another doctor.
          """
          note = db.get(ConsultationNote, note_id)
          if note is None or note.doctor_id != requester.id:
               return None

          if note.is_final and note.ledger_entry is not None:
               return note, note.ledger_entry

          note.finalize()
          db.flush()
          entry = anchor_note(db, note)

          notify(
               db,
               user_id=note.patient_id,
               type="note",
               title="Consultation notes finalized",
               body="Your doctor finalized the notes for your appointment.",
               href=f"/verify/{entry.tx_id}",
          )
          return note, entry

     @staticmethod
     def get_note(db: Session, requester: Requester, note_id: int) -> Optional[ConsultationNote]:
          note = db.get(ConsultationNote, note_id)
          if note is None:
               return None
          if note.doctor_id == requester.id or can_read_subject(db, requester, note.patient_id):
               return note
          return None
