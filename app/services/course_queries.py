from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.course import Course
from app.models.round import Round
from app.services.course_transform import has_tee_data

MIN_SEARCH_LENGTH = 3


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def course_summary(course: Course) -> dict[str, Any]:
    return {
        "id": course.id,
        "name": course.name,
        "club_name": course.club_name,
        "location": course.location,
        "tees": course.tees,
        "has_tee_data": has_tee_data(course.tees),
    }


def list_courses(db: Session, limit: int | None = None) -> list[dict[str, Any]]:
    stmt = select(Course).order_by(Course.name, Course.id)
    if limit:
        stmt = stmt.limit(limit)
    return [course_summary(c) for c in db.execute(stmt).scalars().all()]


def search_courses(db: Session, term: str | None, limit: int = 15) -> list[dict[str, Any]]:
    term = (term or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return []

    pattern = f"%{escape_like(term)}%"
    stmt = (
        select(Course)
        .where(
            or_(
                Course.name.ilike(pattern, escape="\\"),
                Course.location.ilike(pattern, escape="\\"),
                Course.club_name.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Course.name, Course.id)
        .limit(limit)
    )
    return [course_summary(c) for c in db.execute(stmt).scalars().all()]


def recent_courses(db: Session, player_id: int, limit: int = 5) -> list[dict[str, Any]]:
    """Distinct courses from the player's completed rounds, most recently played first."""
    rows = db.execute(
        select(Round.course_id)
        .where(Round.owner_player_id == player_id, Round.completed_at.isnot(None))
        .order_by(Round.completed_at.desc(), Round.id.desc())
    ).scalars().all()

    ordered_ids: list[int] = []
    for course_id in rows:
        if course_id not in ordered_ids:
            ordered_ids.append(course_id)
            if len(ordered_ids) >= limit:
                break
    if not ordered_ids:
        return []

    by_id = {
        c.id: c
        for c in db.execute(select(Course).where(Course.id.in_(ordered_ids))).scalars().all()
    }
    return [course_summary(by_id[cid]) for cid in ordered_ids if cid in by_id]
