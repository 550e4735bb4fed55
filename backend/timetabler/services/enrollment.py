from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from timetabler.models.enrollment import Enrollment, EnrollmentStatus

EnrollmentKey = tuple[str, str, int, str]


def enrolled_count(db: Session, *, subject_id: str, section: str, semester: int, academic_year: str) -> int:
    total = db.execute(
        select(func.count(Enrollment.id)).where(
            Enrollment.subject_id == subject_id,
            Enrollment.section == section,
            Enrollment.semester == semester,
            Enrollment.academic_year == academic_year,
            Enrollment.status == EnrollmentStatus.enrolled,
        )
    ).scalar_one()
    return int(total or 0)


def enrolled_counts(db: Session, keys: Iterable[EnrollmentKey]) -> dict[EnrollmentKey, int]:
    """Count enrolled students for many (subject, section, semester, year) keys in one query."""
    wanted = set(keys)
    if not wanted:
        return {}
    subject_ids = {key[0] for key in wanted}
    rows = db.execute(
        select(
            Enrollment.subject_id,
            Enrollment.section,
            Enrollment.semester,
            Enrollment.academic_year,
            func.count(Enrollment.id),
        )
        .where(
            Enrollment.subject_id.in_(subject_ids),
            Enrollment.status == EnrollmentStatus.enrolled,
        )
        .group_by(Enrollment.subject_id, Enrollment.section, Enrollment.semester, Enrollment.academic_year)
    ).all()
    counts = {key: 0 for key in wanted}
    for subject_id, section, semester, academic_year, total in rows:
        key = (subject_id, section, semester, academic_year)
        if key in counts:
            counts[key] = int(total)
    return counts
