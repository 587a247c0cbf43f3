"""HTTP client for the golf tracker API, as used by the mobile app's service layer."""

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GolfTrackerApi:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        user_id: str | None = None,
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user_id = user_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        return headers

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise ApiClientError(f"{method} {path} failed: {exc}") from exc

        if not resp.ok:
            try:
                body = resp.json()
            except ValueError:
                body = None
            message = (body.get("error") if isinstance(body, dict) else None) or resp.text
            raise ApiClientError(f"{method} {path} -> {resp.status_code}: {message}", resp.status_code)
        return resp.json()

    def get_courses(
        self,
        query: str = "",
        limit: int | None = None,
        user_id: str | None = None,
        no_recent: bool = False,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"query": query}
        if limit:
            params["limit"] = limit
        if user_id:
            params["userId"] = user_id
        if no_recent:
            params["noRecent"] = "true"
        return self._request("GET", "courses", params=params)

    def get_course_details(self, course_id: int, refresh: bool = False) -> dict[str, Any]:
        params = {"refresh": "true"} if refresh else None
        return self._request("GET", f"course-details/{course_id}", params=params)

    def get_course_detailed_info(self, course_id: int, refresh: bool = False) -> dict[str, Any]:
        params = {"refresh": "true"} if refresh else None
        return self._request("GET", f"course-detailed-info/{course_id}", params=params)

    def create_round(self, course_id: int, tee_id: str | None = None, tee_name: str | None = None) -> dict[str, Any]:
        return self._request(
            "POST", "rounds", json={"course_id": course_id, "tee_id": tee_id, "tee_name": tee_name}
        )

    def save_hole(self, round_id: int, hole_number: int, hole_data: dict[str, Any], total_score: int | None = None) -> dict[str, Any]:
        return self._request(
            "PUT",
            f"rounds/{round_id}/holes/{hole_number}",
            json={"hole_data": hole_data, "total_score": total_score},
        )

    def finish_round(self, round_id: int, holes: dict[int, dict[str, Any]]) -> dict[str, Any]:
        return self._request(
            "POST", f"rounds/{round_id}/finish", json={"holes": {str(k): v for k, v in holes.items()}}
        )

    def analyze_performance(self, round_id: int | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if round_id is not None:
            body["roundId"] = round_id
        if self.user_id:
            body["userId"] = self.user_id
        return self._request("POST", "insights/analyze", json=body)

    def get_latest_insights(self) -> dict[str, Any] | None:
        try:
            return self._request("GET", "insights/latest")
        except ApiClientError as exc:
            if exc.status_code == 404:
                return None
            raise
