"""HTTP clients for the live workout and posture care backends.

Both clients expose the collaborator interface the session engine uses:

* ``start_session()`` / ``get_daily_plan()`` to obtain a plan
* ``log_set(exercise_index, reps, weight_kg=None)``
* ``complete_session(duration_seconds, exercises_completed, feedback=None)``
* ``cancel_session()`` (live workouts only)

Responses wrapped as ``{"success": ..., "data": ...}`` are unwrapped. An
unsuccessful response raises :class:`ApiError`; transport errors from
``requests`` propagate unchanged.
"""

from __future__ import annotations

import requests

from liveworkout import settings

DEFAULT_TIMEOUT = 10


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class _ApiClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, token: str | None = None, **kwargs):
        """Build a client from the stored ``api_base_url``/``request_timeout``."""

        return cls(
            settings.get_value("api_base_url"),
            token,
            timeout=settings.get_value("request_timeout") or DEFAULT_TIMEOUT,
            **kwargs,
        )

    def _request(self, method: str, path: str, payload: dict | None = None):
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            json=payload,
            timeout=self.timeout,
        )
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}
        if not response.ok or body.get("success") is False:
            message = body.get("error") or (
                f"{method} {path} failed with status {response.status_code}"
            )
            raise ApiError(message, response.status_code)
        return body.get("data", body)


class LiveWorkoutClient(_ApiClient):
    """Free-form strength sessions (``/live-workout``)."""

    def start_session(self) -> dict:
        data = self._request("POST", "/live-workout/start") or {}
        current = data.get("current_exercise") or {}
        return {
            "exercises": data.get("exercises") or [],
            "current_exercise_index": data.get(
                "current_exercise_index", current.get("index", 0)
            ),
            "accumulated_calories": data.get("accumulated_calories", 0),
            "total_sets_completed": data.get("total_sets_completed", 0),
            "accumulated_fatigue": data.get("accumulated_fatigue", 0),
        }

    def log_set(self, exercise_index: int, reps: int, weight_kg: float | None = None) -> None:
        payload = {"exercise_index": exercise_index, "reps": reps}
        if weight_kg is not None:
            payload["weight_kg"] = weight_kg
        self._request("POST", "/live-workout/log-set", payload)

    def complete_session(
        self,
        duration_seconds: int,
        exercises_completed: int,
        feedback: str | None = None,
    ) -> dict:
        payload = {
            "duration_seconds": duration_seconds,
            "exercises_completed": exercises_completed,
        }
        if feedback is not None:
            payload["feedback"] = feedback
        data = self._request("POST", "/live-workout/end", payload) or {}
        message = data.get("message")
        total = (data.get("summary") or {}).get("total_calories")
        if not message and total is not None:
            message = f"Great job! You burned {total} calories!"
        return {"message": message}

    def cancel_session(self) -> None:
        self._request("POST", "/live-workout/cancel")


class PostureCareClient(_ApiClient):
    """Corrective sessions (``/posture-care``)."""

    def get_daily_plan(self) -> dict:
        data = self._request("GET", "/posture-care/daily-plan") or {}
        plan = data.get("plan") or {}
        return {"exercises": plan.get("exercises") or data.get("exercises") or []}

    def complete_session(
        self,
        duration_seconds: int,
        exercises_completed: int,
        feedback: str | None = None,
    ) -> dict:
        payload = {
            "duration_seconds": duration_seconds,
            "exercises_completed": exercises_completed,
        }
        if feedback is not None:
            payload["feedback"] = feedback
        data = self._request("POST", "/posture-care/complete", payload) or {}
        return {"message": data.get("message")}
