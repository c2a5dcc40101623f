import logging
import os
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("FIXIT_API_BASE_URL", "http://localhost:5000")
REQUEST_TIMEOUT_SECONDS = 10.0

CANNOT_CONNECT_MESSAGE = "Cannot connect to server. Make sure the backend is running."


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None, errors: list | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


class ConnectionFailed(ApiError):
    def __init__(self, message: str = CANNOT_CONNECT_MESSAGE):
        super().__init__(message)


@dataclass
class AuthSession:
    """Token and user shared between the session container and the API client."""

    token: str | None = None
    user: dict | None = field(default=None)

    @property
    def role(self) -> str | None:
        return (self.user or {}).get("role")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def start(self, token: str, user: dict) -> None:
        self.token = token
        self.user = user

    def invalidate(self) -> None:
        self.token = None

    def clear(self) -> None:
        self.token = None
        self.user = None


class ApiClient:
    def __init__(
        self,
        session: AuthSession,
        base_url: str | None = None,
        http: httpx.Client | None = None,
    ):
        self.session = session
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self.http = http or httpx.Client(base_url=f"{self.base_url}/api", timeout=REQUEST_TIMEOUT_SECONDS)

    def _headers(self) -> dict:
        if self.session.token:
            return {"Authorization": f"Bearer {self.session.token}"}
        return {}

    def request(self, method: str, path: str, **kwargs):
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            response = self.http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as exc:
            logger.error("Cannot reach %s: %s", self.base_url, exc)
            raise ConnectionFailed() from exc

        if response.status_code == 401:
            self.session.invalidate()

        body = _json_or_none(response)
        if response.is_error:
            message = (body or {}).get("message") if isinstance(body, dict) else None
            errors = (body or {}).get("errors") if isinstance(body, dict) else None
            raise ApiError(message or f"Request failed with status {response.status_code}", response.status_code, errors)
        return body

    def get(self, path: str, params: dict | None = None):
        return self.request("GET", path, params=params)

    def post(self, path: str, json: dict | None = None, **kwargs):
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: dict | None = None):
        return self.request("PUT", path, json=json)

    def close(self) -> None:
        self.http.close()


def _json_or_none(response: httpx.Response):
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


@dataclass
class ActionResult:
    success: bool
    error: str | None = None
    issue: object | None = None
