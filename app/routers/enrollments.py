from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.common import Envelope
from app.schemas.enrollment import EnrollmentCreated, EnrollmentDetail, EnrollmentWithCourse
from app.services.enrollments import EnrollmentService

router = APIRouter(prefix="/enrollments", tags=["enrollments"])
enrollment_service = EnrollmentService()


def get_enrollment_service() -> EnrollmentService:
    return enrollment_service


@router.get("/my-courses", response_model=Envelope[List[EnrollmentWithCourse]])
def my_enrollments(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> Envelope[List[EnrollmentWithCourse]]:
    return Envelope[List[EnrollmentWithCourse]](data=service.get_my_enrollments(db, user.id))


@router.post("/{course_id}", response_model=Envelope[EnrollmentCreated], status_code=201)
def enroll(
    course_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> Envelope[EnrollmentCreated]:
    return Envelope[EnrollmentCreated](message="Successfully enrolled", data=service.enroll(db, user.id, course_id))


@router.get("/{course_id}", response_model=Envelope[EnrollmentDetail])
def get_enrollment(
    course_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> Envelope[EnrollmentDetail]:
    return Envelope[EnrollmentDetail](data=service.get_enrollment(db, user.id, course_id))
