"""Class membership lookups.

Every authorization decision calls into here so it reflects the current
roster; nothing is cached on the user or the request.
"""

import uuid

from sqlalchemy.orm import Session

from classquiz.core.errors import NotFound
from classquiz.db.models import ClassEnrollment, Classroom


def get_class(db: Session, class_id: uuid.UUID) -> Classroom | None:
    return db.query(Classroom).filter(Classroom.id == class_id).first()


def require_class(db: Session, class_id: uuid.UUID) -> Classroom:
    """Return the class or raise NotFound."""
    classroom = get_class(db, class_id)
    if classroom is None:
        raise NotFound("Class not found")
    return classroom


def is_class_teacher(classroom: Classroom, user_id: uuid.UUID) -> bool:
    return classroom.teacher_id == user_id


def is_enrolled(db: Session, class_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return (
        db.query(ClassEnrollment.id)
        .filter(
            ClassEnrollment.class_id == class_id,
            ClassEnrollment.student_id == user_id,
        )
        .first()
        is not None
    )


def enrolled_student_ids(db: Session, class_id: uuid.UUID) -> list[uuid.UUID]:
    rows = (
        db.query(ClassEnrollment.student_id)
        .filter(ClassEnrollment.class_id == class_id)
        .order_by(ClassEnrollment.enrolled_at)
        .all()
    )
    return [row.student_id for row in rows]
