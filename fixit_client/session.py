"""Session container: who is signed in, restored from a local credential cache."""

import json
import logging
import os
import threading
from pathlib import Path

from fixit_client.api import ActionResult, ApiClient, ApiError

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
DEFAULT_CACHE_PATH = Path(os.getenv("FIXIT_CREDENTIAL_CACHE", Path.home() / ".campus_fixit" / "session.json"))


class CredentialCache:
    """String key/value store persisted as one JSON file."""

    def __init__(self, path: Path | str = DEFAULT_CACHE_PATH):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("Ignoring unreadable credential cache at %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_items(self, items: dict[str, str]) -> None:
        data = self._read()
        data.update(items)
        self._write(data)

    def remove_items(self, keys: list[str]) -> None:
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)


class SessionStore:
    def __init__(self, api: ApiClient, cache: CredentialCache | None = None):
        self.api = api
        self.session = api.session
        self.cache = cache or CredentialCache()
        self.loading = True
        self.error: str | None = None
        self.pending_eviction: threading.Thread | None = None

    @property
    def user(self) -> dict | None:
        return self.session.user

    @property
    def token(self) -> str | None:
        return self.session.token

    @property
    def role(self) -> str | None:
        return self.session.role

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    def restore(self) -> None:
        try:
            stored_token = self.cache.get_item(TOKEN_KEY)
            stored_user = self.cache.get_item(USER_KEY)
            if stored_token and stored_user:
                try:
                    user = json.loads(stored_user)
                except ValueError:
                    logger.error("Discarding malformed cached user")
                    self.cache.remove_items([TOKEN_KEY, USER_KEY])
                    return
                if not isinstance(user, dict):
                    logger.error("Discarding malformed cached user")
                    self.cache.remove_items([TOKEN_KEY, USER_KEY])
                    return
                self.session.start(stored_token, user)
        except OSError:
            logger.exception("Error restoring session")
        finally:
            self.loading = False

    def _start(self, payload: dict) -> None:
        token = payload["token"]
        user = payload["user"]
        self.cache.set_items({TOKEN_KEY: token, USER_KEY: json.dumps(user)})
        self.session.start(token, user)

    def _authenticate(self, path: str, body: dict, fallback_message: str) -> ActionResult:
        self.error = None
        self.loading = True
        try:
            self._start(self.api.post(path, json=body))
            return ActionResult(success=True)
        except ApiError as exc:
            logger.error("%s failed: %s", path, exc.message)
            self.error = exc.message or fallback_message
            return ActionResult(success=False, error=self.error)
        except OSError:
            logger.exception("Could not save credentials after %s", path)
            self.error = fallback_message
            return ActionResult(success=False, error=self.error)
        finally:
            self.loading = False

    def login(self, email: str, password: str) -> ActionResult:
        return self._authenticate(
            "/auth/login",
            {"email": email, "password": password},
            "Login failed. Please try again.",
        )

    def register(self, name: str, email: str, password: str) -> ActionResult:
        return self._authenticate(
            "/auth/register",
            {"name": name, "email": email, "password": password},
            "Registration failed. Please try again.",
        )

    def _evict_cache(self) -> None:
        try:
            self.cache.remove_items([TOKEN_KEY, USER_KEY])
        except OSError:
            logger.exception("Error clearing credential cache")

    def logout(self) -> None:
        self.session.clear()
        self.error = None
        self.pending_eviction = threading.Thread(target=self._evict_cache, daemon=True)
        self.pending_eviction.start()
