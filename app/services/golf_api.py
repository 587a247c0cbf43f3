"""Client for the upstream golf data API (course details and hole coordinates)."""

import logging
from typing import Any

import requests

from app.core.settings import settings

logger = logging.getLogger(__name__)


class GolfApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GolfApiNotFound(GolfApiError):
    pass


class GolfApiClient:
    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _get(self, path: str) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.get(
                url, headers=self._headers(), timeout=self.timeout, allow_redirects=True
            )
        except requests.RequestException as exc:
            raise GolfApiError(f"Golf API request failed: {exc}") from exc

        logger.info("Golf API GET %s -> %s", path, resp.status_code)

        if resp.status_code == 404:
            raise GolfApiNotFound(f"Golf API error: 404 - {resp.text}", 404, resp.text)
        if resp.status_code in (401, 403):
            logger.error("Golf API authentication error, check GOLF_API_KEY")
        if not resp.ok:
            raise GolfApiError(
                f"Golf API error: {resp.status_code} - {resp.text}", resp.status_code, resp.text
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise GolfApiError("Golf API returned invalid JSON", resp.status_code, resp.text) from exc

    def get_course(self, api_course_id: str) -> Any:
        return self._get(f"courses/{api_course_id}")

    def get_coordinates(self, api_course_id: str) -> Any:
        return self._get(f"coordinates/{api_course_id}")


def build_golf_api_client() -> GolfApiClient:
    return GolfApiClient(
        base_url=settings.GOLF_API_BASE_URL,
        api_key=settings.GOLF_API_KEY,
        timeout=settings.GOLF_API_TIMEOUT,
    )
