"""Attempt result and review endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DbSession

from exam_api.database import get_db
from exam_api.models import ResultResponse, ReviewResponse
from exam_api.services import review_service
from exam_api.utils import validate_id

router = APIRouter(prefix="/api/attempts/{attempt_id}", tags=["attempts"])


@router.get("/result", response_model=ResultResponse)
def get_result(
    attempt_id: str,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Get the final result of an attempt."""
    attempt_id = validate_id("attemptId", attempt_id)
    result = review_service.get_result(db, attempt_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Result not found")
    return result


@router.get("/review", response_model=ReviewResponse)
def get_review(
    attempt_id: str,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Review answers with correct answers and explanations (completed attempts only)."""
    attempt_id = validate_id("attemptId", attempt_id)
    attempt = review_service.get_attempt(db, attempt_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Attempt not found")
    if not attempt.is_completed:
        raise HTTPException(status_code=409, detail="Attempt is not completed")
    return {
        "attemptId": attempt.id,
        "testId": attempt.test_id,
        "items": review_service.get_review(db, attempt_id),
    }
