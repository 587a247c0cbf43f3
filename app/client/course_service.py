"""Course lookups for the app: HTTP API first, direct database queries as fallback."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.client.api import ApiClientError, GolfTrackerApi
from app.db.session import session_scope
from app.models.course import Course
from app.models.player import Player
from app.services import course_queries

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, api: GolfTrackerApi, session_factory: sessionmaker | None = None):
        self.api = api
        self.session_factory = session_factory

    def _fallback(self, label: str, query, default):
        if self.session_factory is None:
            return default
        try:
            with session_scope(self.session_factory) as db:
                return query(db)
        except SQLAlchemyError:
            logger.exception("[courseService] Direct query failed in %s", label)
            return default

    def get_all_courses(self, limit: int | None = None) -> list[dict[str, Any]]:
        try:
            return self.api.get_courses(limit=limit, no_recent=True)["courses"]
        except ApiClientError as exc:
            logger.warning("[courseService] getAllCourses via API failed (%s), querying directly", exc)
        return self._fallback("get_all_courses", lambda db: course_queries.list_courses(db, limit), [])

    def search_courses(self, term: str, limit: int = 15) -> list[dict[str, Any]]:
        term = (term or "").strip()
        if len(term) < course_queries.MIN_SEARCH_LENGTH:
            return []
        try:
            return self.api.get_courses(query=term, limit=limit, no_recent=True)["courses"]
        except ApiClientError as exc:
            logger.warning("[courseService] searchCourses via API failed (%s), querying directly", exc)
        return self._fallback(
            "search_courses", lambda db: course_queries.search_courses(db, term, limit), []
        )

    def get_recent_courses(self, user_id: str | None, limit: int = 5) -> list[dict[str, Any]]:
        if not user_id:
            logger.info("[courseService] No user ID provided for recent courses")
            return []
        try:
            data = self.api.get_courses(query="", limit=limit, user_id=user_id)
            return data.get("recentCourses", [])
        except ApiClientError as exc:
            logger.warning("[courseService] getRecentCourses via API failed (%s), querying directly", exc)

        def query(db):
            player = db.execute(
                select(Player).where(Player.external_id == user_id)
            ).scalars().one_or_none()
            return course_queries.recent_courses(db, player.id, limit) if player else []

        return self._fallback("get_recent_courses", query, [])

    def get_course_by_id(self, course_id: int) -> dict[str, Any] | None:
        try:
            return self.api.get_course_details(course_id)
        except ApiClientError as exc:
            if exc.status_code == 404:
                return None
            logger.warning("[courseService] getCourseById via API failed (%s), querying directly", exc)

        def query(db):
            course = db.get(Course, course_id)
            return course.to_dict() if course else None

        return self._fallback("get_course_by_id", query, None)
