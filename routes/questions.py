# routes/questions.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from models.user import User
from routes.auth import get_store, require_teacher
from services.question_sheet import export_rows, read_csv, template_rows, write_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/questions", tags=["questions"])


class SheetImport(BaseModel):
    csv: str
    subjectId: Optional[str] = None
    topicId: Optional[str] = None
    hasHeader: bool = True


def _csv_response(rows, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        write_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/template")
async def download_template(current_user: User = Depends(require_teacher)):
    return _csv_response(template_rows(), "question_template.csv")


@router.get("/export")
async def export_questions(
    subjectId: Optional[str] = None,
    topicId: Optional[str] = None,
    type: Optional[str] = None,
    current_user: User = Depends(require_teacher),
    store=Depends(get_store),
):
    questions = await store.list_questions(subject_id=subjectId, topic_id=topicId, type=type)
    logger.info(f"Exporting {len(questions)} questions")
    return _csv_response(export_rows(questions), "questions.csv")


@router.post("/import")
async def import_questions(request: SheetImport, current_user: User = Depends(require_teacher),
                           store=Depends(get_store)):
    result = await store.import_questions(
        read_csv(request.csv), request.subjectId, request.topicId, has_header=request.hasHeader
    )
    logger.info(f"Imported {len(result.questions)} questions for topic {request.topicId}")
    return {
        "imported": len(result.questions),
        "questions": [q.model_dump() for q in result.questions],
        "errors": result.errors,
        "skipped": result.skipped,
    }
