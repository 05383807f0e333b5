# routers/predictions.py
"""
Prediction API.

POST /api/predictions: save a risk assessment; it is anchored into the
verification ledger in the same transaction and the tx_id is returned.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_session
from schemas.prediction import PredictionCreate, PredictionResponse
from security import verify_token
from services.access_service import Requester
from services.exceptions import SnapshotValidationError, TransactionIdCollisionError
from services.prediction_service import PredictionService

router = APIRouter(prefix="/api/predictions", tags=["predictions"])


def _build_prediction_response(prediction, tx_id=None) -> PredictionResponse:
     response = PredictionResponse.model_validate(prediction)
     if tx_id is None and prediction.ledger_entry is not None:
          tx_id = prediction.ledger_entry.tx_id
     response.tx_id = tx_id
     return response


@router.post(
     "",
     response_model=PredictionResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Save and anchor a prediction",
)
def create_prediction(
     body: PredictionCreate,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     """
     Store a prediction and anchor it.

     - **input**: vitals the risk was computed from
     - **risk_percentage / risk_category / health_score**: computed risk
     - **patient_id**: optional; doctors with granted consent may save for a patient
     - **doctor_remarks**: optional note, not anchored
     """
     try:
          prediction, entry = PredictionService.save_prediction(
               db,
               requester,
               input=body.input.model_dump(),
               risk_percentage=body.risk_percentage,
               risk_category=body.risk_category.value,
               health_score=body.health_score,
               patient_id=body.patient_id,
               doctor_remarks=body.doctor_remarks,
          )
     except PermissionError as e:
          raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
     except SnapshotValidationError as e:
          raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
     except TransactionIdCollisionError:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Could not save, try again")

     return _build_prediction_response(prediction, entry.tx_id)


@router.get("/{prediction_id}", response_model=PredictionResponse, summary="Get a prediction")
def get_prediction(
     prediction_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     prediction = PredictionService.get_prediction(db, requester, prediction_id)
     if prediction is None:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail=f"Prediction with ID {prediction_id} not found",
          )
     return _build_prediction_response(prediction)
