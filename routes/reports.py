# routes/reports.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from models.curriculum import PUBLISHED
from models.user import STUDENT, TEACHER, User
from routes.auth import get_current_user, get_store, require_teacher
from services.gradebook import build_gradebook
from services.reports import build_class_report, student_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


async def _find_class(store, class_id: str):
    for classroom in await store.list_classes():
        if classroom.id == class_id:
            return classroom
    raise HTTPException(404, "Class not found")


@router.get("/classes/{class_id}")
async def class_report(class_id: str, current_user: User = Depends(require_teacher), store=Depends(get_store)):
    await _find_class(store, class_id)
    students = await store.list_students(class_id=class_id)
    report = build_class_report(
        class_id,
        students,
        await store.list_assignments(class_id=class_id),
        await store.list_submissions(),
        await store.list_progress(),
        await store.list_lessons(status=PUBLISHED),
    )
    logger.info(
        f"Report for class {class_id}: completion={report.completionRate}% "
        f"onTime={report.onTimeRate}% atRisk={len(report.atRisk)}"
    )
    return report.to_dict()


@router.get("/classes/{class_id}/gradebook")
async def class_gradebook(class_id: str, current_user: User = Depends(require_teacher), store=Depends(get_store)):
    await _find_class(store, class_id)
    gradebook = build_gradebook(
        await store.list_students(class_id=class_id),
        await store.list_assignments(class_id=class_id),
        await store.list_submissions(),
    )
    return gradebook.to_dict()


@router.get("/students/{student_id}")
async def student_report(student_id: str, current_user: User = Depends(get_current_user), store=Depends(get_store)):
    if current_user.role != TEACHER and current_user.id != student_id:
        raise HTTPException(403, "Unauthorized access")

    student = await store.get_user(student_id)
    if student.role != STUDENT:
        raise HTTPException(404, "Student not found")

    return student_summary(
        student,
        await store.list_assignments(class_id=student.classId) if student.classId else [],
        await store.list_submissions(student_id=student_id),
        await store.list_progress(student_id=student_id),
        await store.list_lessons(status=PUBLISHED),
    )
