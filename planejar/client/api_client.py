"""
Thin HTTP client for the Planejar API.

Error responses carry the ``{error_code, message, details}`` envelope and
are raised as ``ApiError``.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, error_code: str = "HTTP_ERROR", details: Optional[dict] = None):
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.token = token
        self._http = httpx.Client(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"API request failed: {method} {path}: {e}")
            raise ApiError(0, "Erro de conexão", "CONNECTION_ERROR")
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise ApiError(
                response.status_code,
                body.get("message") or response.reason_phrase or "Erro de conexão",
                body.get("error_code", "HTTP_ERROR"),
                body.get("details"),
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ============= Auth =============
    def login(self, email: str, password: str) -> dict:
        result = self.request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = result["token"]
        return result

    def me(self) -> dict:
        return self.request("GET", "/auth/me")

    def change_password(self, user_id: str, current_password: str, new_password: str) -> dict:
        """Also the way out of PASSWORD_CHANGE_REQUIRED: ``user_id`` comes from the error details
        and ``current_password`` is the provisional password just typed at login."""
        result = self.request(
            "POST", "/auth/change-password",
            json={"user_id": str(user_id), "current_password": current_password, "new_password": new_password},
        )
        self.token = result["token"]
        return result

    def logout(self) -> None:
        self.request("POST", "/auth/logout")
        self.token = None

    # ============= Users =============
    def list_users(self) -> List[dict]:
        return self.request("GET", "/users")

    def get_user(self, user_id: str) -> dict:
        return self.request("GET", f"/users/{user_id}")

    # ============= Projects =============
    def list_projects(self) -> List[dict]:
        return self.request("GET", "/projects")

    def get_project(self, project_id: str) -> dict:
        return self.request("GET", f"/projects/{project_id}")

    def create_project(self, payload: dict) -> dict:
        return self.request("POST", "/projects", json=payload)

    def update_project(self, project_id: str, changes: dict) -> dict:
        return self.request("PUT", f"/projects/{project_id}", json=changes)

    def delete_project(self, project_id: str) -> None:
        self.request("DELETE", f"/projects/{project_id}")

    def advance_phase(self, project_id: str, phase_number: int) -> dict:
        return self.request("POST", f"/projects/{project_id}/advance-phase", json={"phase_number": phase_number})

    def update_phase(self, project_id: str, phase_number: int, changes: dict) -> dict:
        return self.request("PUT", f"/projects/{project_id}/phases/{phase_number}", json=changes)

    # ============= Tasks =============
    def list_my_tasks(self) -> List[dict]:
        return self.request("GET", "/tasks")

    def complete_task(self, task_id: str) -> dict:
        return self.request("POST", f"/tasks/{task_id}/complete")

    # ============= Notifications =============
    def list_notifications(self) -> List[dict]:
        return self.request("GET", "/notifications")

    def mark_notification_read(self, notification_id: str) -> dict:
        return self.request("PUT", f"/notifications/{notification_id}/read")
