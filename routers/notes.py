# routers/notes.py
"""
Consultation note API.

Doctors edit a draft per appointment, then finalize it; finalizing anchors
the note into the verification ledger and freezes it.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_session
from schemas.note import NoteDraft, NoteResponse
from security import verify_token, require_doctor
from services.access_service import Requester
from services.exceptions import NoteFinalizedError, SnapshotValidationError, TransactionIdCollisionError
from services.note_service import NoteService

router = APIRouter(prefix="/api/notes", tags=["notes"])


def _build_note_response(note, tx_id=None) -> NoteResponse:
     response = NoteResponse.model_validate(note)
     if tx_id is None and note.ledger_entry is not None:
          tx_id = note.ledger_entry.tx_id
     response.tx_id = tx_id
     return response


@router.put("", response_model=NoteResponse, summary="Create or update a draft note")
def save_draft(
     body: NoteDraft,
     db: Session = Depends(get_session),
     requester: Requester = Depends(require_doctor),
):
     try:
          note = NoteService.save_draft(
               db,
               requester,
               appointment_id=body.appointment_id,
               patient_id=body.patient_id,
               diagnosis=body.diagnosis,
               recommendations=body.recommendations,
          )
     except NoteFinalizedError as e:
          raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
     except SnapshotValidationError as e:
          raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

     if note is None:
          raise HTTPException(
               status_code=status.HTTP_403_FORBIDDEN,
               detail="Another doctor owns the note for this appointment",
          )
     return _build_note_response(note)


@router.post("/{note_id}/finalize", response_model=NoteResponse, summary="Finalize and anchor a note")
def finalize_note(
     note_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(require_doctor),
):
     try:
          result = NoteService.finalize_note(db, requester, note_id)
     except NoteFinalizedError as e:
          raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
     except TransactionIdCollisionError:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Could not finalize, try again")

     if result is None:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Note with ID {note_id} not found")
     note, entry = result
     return _build_note_response(note, entry.tx_id)


@router.get("/{note_id}", response_model=NoteResponse, summary="Get a note")
def get_note(
     note_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     note = NoteService.get_note(db, requester, note_id)
     if note is None:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Note with ID {note_id} not found")
     return _build_note_response(note)
