from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_golf_api, get_optional_user_id
from app.core.settings import settings
from app.models.player import Player
from app.services import course_queries
from app.services.course_refresh import (
    CourseNotFound,
    get_course_detailed_info,
    get_course_details,
)
from app.services.golf_api import GolfApiClient

router = APIRouter()


@router.get("/courses")
def list_courses(
    query: str = "",
    user_id: str | None = Query(default=None, alias="userId"),
    limit: int | None = Query(default=None, ge=1, le=200),
    no_recent: bool = Query(default=False, alias="noRecent"),
    db: Session = Depends(get_db),
    caller_id: str | None = Depends(get_optional_user_id),
) -> dict[str, Any]:
    limit = limit or settings.COURSE_LIST_LIMIT
    query = query.strip()

    if not query:
        courses = course_queries.list_courses(db, limit)
    else:
        # Shorter than the minimum search length yields no results.
        courses = course_queries.search_courses(db, query, limit)

    response: dict[str, Any] = {"courses": courses}

    effective_user_id = user_id or caller_id
    if effective_user_id and not no_recent:
        player = db.execute(
            select(Player).where(Player.external_id == effective_user_id)
        ).scalars().one_or_none()
        if player:
            recent = course_queries.recent_courses(db, player.id, limit)
            if recent:
                response["recentCourses"] = recent

    return response


def _require_identifier(course_id: int | None, api_course_id: str | None) -> None:
    if course_id is None and not api_course_id:
        raise HTTPException(status_code=400, detail="Course ID or API Course ID is required")


def _not_found(exc: CourseNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail={"error": str(exc), "courseId": exc.course_id})


def _details(db, api, course_id, api_course_id, refresh) -> dict[str, Any]:
    _require_identifier(course_id, api_course_id)
    try:
        return get_course_details(
            db, api, course_id=course_id, api_course_id=api_course_id, force_refresh=refresh
        )
    except CourseNotFound as exc:
        raise _not_found(exc)


def _detailed_info(db, api, course_id, api_course_id, refresh) -> dict[str, Any]:
    _require_identifier(course_id, api_course_id)
    try:
        return get_course_detailed_info(
            db, api, course_id=course_id, api_course_id=api_course_id, force_refresh=refresh
        )
    except CourseNotFound as exc:
        raise _not_found(exc)


@router.get("/course-details")
def course_details(
    course_id: int | None = Query(default=None, alias="courseId"),
    api_course_id: str | None = Query(default=None, alias="apiCourseId"),
    refresh: bool = False,
    db: Session = Depends(get_db),
    api: GolfApiClient = Depends(get_golf_api),
):
    return _details(db, api, course_id, api_course_id, refresh)


@router.get("/course-details/{course_id}")
def course_details_by_id(
    course_id: int,
    api_course_id: str | None = Query(default=None, alias="apiCourseId"),
    refresh: bool = False,
    db: Session = Depends(get_db),
    api: GolfApiClient = Depends(get_golf_api),
):
    return _details(db, api, course_id, api_course_id, refresh)


@router.get("/course-detailed-info")
def course_detailed_info(
    course_id: int | None = Query(default=None, alias="courseId"),
    api_course_id: str | None = Query(default=None, alias="apiCourseId"),
    refresh: bool = False,
    db: Session = Depends(get_db),
    api: GolfApiClient = Depends(get_golf_api),
):
    return _detailed_info(db, api, course_id, api_course_id, refresh)


@router.get("/course-detailed-info/{course_id}")
def course_detailed_info_by_id(
    course_id: int,
    api_course_id: str | None = Query(default=None, alias="apiCourseId"),
    refresh: bool = False,
    db: Session = Depends(get_db),
    api: GolfApiClient = Depends(get_golf_api),
):
    return _detailed_info(db, api, course_id, api_course_id, refresh)
