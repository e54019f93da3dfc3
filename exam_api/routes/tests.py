"""Test content endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DbSession

from exam_api.database import get_db
from exam_api.models import TestImport
from exam_api.services import test_service
from exam_api.services.import_service import ContentImportError, import_test
from exam_api.utils import parse_bool, validate_id

router = APIRouter(prefix="/api/tests", tags=["tests"])


@router.get("")
def list_tests(
    db: Annotated[DbSession, Depends(get_db)],
    subscriber: str | None = None,
) -> list[dict[str, object]]:
    """List published tests visible to the caller."""
    return test_service.list_tests(db, parse_bool(subscriber))


@router.post("/import")
def import_test_payload(
    payload: TestImport,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Import a test with its chapters, pieces and questions."""
    title = payload.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    try:
        test = import_test(db, payload)
    except ContentImportError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "imported", "testId": test.id}


@router.get("/{test_id}")
def get_test(
    test_id: str,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Get test outline."""
    test_id = validate_id("testId", test_id)
    outline = test_service.get_outline(db, test_id)
    if outline is None:
        raise HTTPException(status_code=404, detail="Test not found")
    return outline
