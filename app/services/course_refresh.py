"""Look up a course, decide whether it is stale, refresh it from the golf API.

Both flows follow the same shape: find the row by database id or upstream id,
work out whether the stored data is missing or older than the freshness
threshold, fetch and transform when needed, write the row back. Upstream
failures fall back to the stored row when there is one.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.models.course import Course
from app.services.course_transform import (
    CourseDataError,
    has_complete_data,
    has_hole_data,
    has_tee_data,
    poi_feature_count,
    transform_coordinates,
    transform_course,
)
from app.services.golf_api import GolfApiClient, GolfApiError, GolfApiNotFound

logger = logging.getLogger(__name__)

# Failures that leave the stored row usable.
RECOVERABLE_ERRORS = (GolfApiError, CourseDataError, SQLAlchemyError)


class CourseNotFound(Exception):
    def __init__(self, message: str, course_id: Any = None):
        super().__init__(message)
        self.course_id = course_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_stale(ts: datetime | None, now: datetime, days: int | None = None) -> bool:
    if ts is None:
        return False
    if days is None:
        days = settings.COURSE_FRESHNESS_DAYS
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return now - ts > timedelta(days=days)


def find_course(db: Session, course_id: int | None, api_course_id: str | None) -> Course | None:
    if course_id is not None:
        course = db.get(Course, course_id)
        if course:
            return course
    if api_course_id:
        return db.execute(
            select(Course).where(Course.api_course_id == api_course_id)
        ).scalars().one_or_none()
    return None


def _age_days(ts: datetime, now: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return (now - ts).days


def get_course_details(
    db: Session,
    api: GolfApiClient,
    course_id: int | None = None,
    api_course_id: str | None = None,
    force_refresh: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or utcnow()
    existing = find_course(db, course_id, api_course_id)

    if existing is None:
        logger.info("Course %s not found in database", course_id or api_course_id)
        needs_refresh = True
    else:
        stale = is_stale(existing.updated_at, now)
        if stale:
            logger.info(
                "Course %s data is stale, last updated %d days ago",
                existing.id,
                _age_days(existing.updated_at, now),
            )
        needs_refresh = (
            force_refresh
            or not has_tee_data(existing.tees)
            or not has_hole_data(existing.holes)
            or stale
        )

    upstream_id = (existing.api_course_id if existing else None) or api_course_id
    course = existing
    refreshed = False

    if needs_refresh and api.configured and upstream_id:
        logger.info("Fetching course details from golf API for %s", upstream_id)
        try:
            values = transform_course(api.get_course(upstream_id), now)
            values["api_course_id"] = values["api_course_id"] or upstream_id
            if existing is not None:
                for key, value in values.items():
                    setattr(existing, key, value)
            else:
                course = Course(**values)
                db.add(course)
            db.commit()
            db.refresh(course)
            refreshed = True
        except RECOVERABLE_ERRORS as exc:
            db.rollback()
            if existing is None:
                raise
            logger.warning("Course refresh failed, returning stored data: %s", exc)
            course = existing
    elif needs_refresh:
        logger.info("Course refresh needed but no API key or upstream id available")

    if course is None:
        raise CourseNotFound("Course not found", course_id or api_course_id)

    return {
        **course.to_dict(),
        "has_complete_data": has_complete_data(course),
        "data_refreshed": refreshed,
    }


def get_course_detailed_info(
    db: Session,
    api: GolfApiClient,
    course_id: int | None = None,
    api_course_id: str | None = None,
    force_refresh: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or utcnow()
    course = find_course(db, course_id, api_course_id)
    if course is None:
        raise CourseNotFound(
            "Course not found in database. Load the course details first.",
            course_id or api_course_id,
        )

    upstream_id = api_course_id or course.api_course_id
    stale = is_stale(course.poi_updated_at, now)
    if stale:
        logger.info(
            "POI data for course %s is stale, last updated %d days ago",
            course.id,
            _age_days(course.poi_updated_at, now),
        )
    needs_refresh = force_refresh or course.poi is None or stale
    refreshed = False

    if needs_refresh and api.configured and upstream_id:
        logger.info("Fetching POI data from golf API for %s", upstream_id)
        try:
            try:
                course.poi = transform_coordinates(api.get_coordinates(upstream_id))
            except GolfApiNotFound:
                # Remember that the course was checked and has no coordinates.
                logger.warning("Course coordinates not found in golf API for %s", upstream_id)
                course.poi = []
            course.poi_updated_at = now
            db.commit()
            db.refresh(course)
            refreshed = True
            logger.info("Updated course %s with POI for %d holes", course.id, len(course.poi))
        except RECOVERABLE_ERRORS as exc:
            db.rollback()
            logger.warning("POI refresh failed, returning stored data: %s", exc)

    feature_count = poi_feature_count(course.poi)
    return {
        **course.to_dict(),
        "has_poi_data": feature_count > 0,
        "poi_feature_count": feature_count,
        "data_refreshed": refreshed,
    }
