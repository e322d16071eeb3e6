"""HTTP client for the study-session endpoints.

Every method makes a single attempt and returns the decoded JSON body. The
one exception is a write rejected for a stale CSRF token, which is retried
once with a freshly fetched token.

Anything other than a 2xx answer, or a transport failure, raises
``RecorderError`` carrying the server's own message so the UI can show it
verbatim.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"
DEFAULT_TIMEOUT = 10  # seconds


class RecorderError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class HTTPSessionRecorder:
    """Talks to ``/api/sessions`` and ``/api/shared-sessions``.

    A ``requests.Session`` keeps the login cookie between calls; pass your
    own ``session`` to share cookies or to substitute a test double.
    """

    def __init__(self, base_url: str | None = None, session=None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = (base_url or os.environ.get("STUDY_API_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self._csrf_token: str | None = None

    # ── transport ─────────────────────────────────────────────────────

    def _request(self, method: str, path: str, payload: dict | None = None, refresh_csrf: bool = True):
        if method != "GET" and self._csrf_token is None:
            self._fetch_csrf_token()

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise RecorderError(str(exc)) from exc

        # Server tokens expire; one fresh token and one retry per call
        if refresh_csrf and method != "GET" and _is_csrf_rejection(response):
            logger.info("CSRF token rejected on %s %s, fetching a new one", method, path)
            self._csrf_token = None
            return self._request(method, path, payload, refresh_csrf=False)

        if response.status_code >= 400:
            message = response.text or f"HTTP {response.status_code}"
            raise RecorderError(message, response.status_code)
        return response.json()

    def _fetch_csrf_token(self) -> None:
        data = self._request("GET", "/api/auth/csrf")
        self._csrf_token = data["csrfToken"]
        self.session.headers["X-CSRFToken"] = self._csrf_token

    # ── auth ──────────────────────────────────────────────────────────

    def login(self, email: str, password: str) -> dict:
        return self._request("POST", "/api/auth/login", {"email": email, "password": password})

    def logout(self) -> dict:
        return self._request("POST", "/api/auth/logout")

    # ── solo sessions ─────────────────────────────────────────────────

    def start_session(self, mode: str) -> dict:
        return self._request("POST", "/api/sessions/start", {"mode": mode})

    def save_progress(self, mode: str, minutes: int, session_id=None) -> dict:
        return self._request("POST", "/api/sessions/save",
                             {"mode": mode, "minutes": minutes, "sessionId": session_id})

    def end_session(self, session_id, duration: int) -> dict:
        return self._request("POST", "/api/sessions/end", {"sessionId": session_id, "duration": duration})

    # ── shared sessions ───────────────────────────────────────────────

    def create_shared_session(self, name: str, timer_mode: str, duration: int) -> dict:
        return self._request("POST", "/api/shared-sessions",
                             {"name": name, "timerMode": timer_mode, "duration": duration})

    def join_shared_session(self, invite_code: str) -> dict:
        return self._request("POST", "/api/shared-sessions/join", {"inviteCode": invite_code})

    def get_shared_session(self, session_id) -> dict:
        return self._request("GET", f"/api/shared-sessions/{session_id}")

    def update_shared_session(self, session_id, action: str, timer_mode: str | None = None,
                              duration: int | None = None) -> dict:
        payload = {"action": action}
        if timer_mode is not None:
            payload["timerMode"] = timer_mode
        if duration is not None:
            payload["duration"] = duration
        return self._request("PATCH", f"/api/shared-sessions/{session_id}", payload)

    def leave_shared_session(self, session_id) -> dict:
        return self._request("DELETE", f"/api/shared-sessions/{session_id}")


def _is_csrf_rejection(response) -> bool:
    return response.status_code == 400 and "CSRF" in (response.text or "")


class InlineExecutor:
    """``Executor`` look-alike that runs work immediately on the caller's thread."""

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait: bool = True) -> None:
        pass
