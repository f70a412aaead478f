import copy
import logging
from typing import Any, List, Optional

from planejar.client.api_client import ApiClient, ApiError
from planejar.client.commands import (
    AdvancePhase, Command, CompleteTask, CreateProject, DeleteProject, MarkNotificationRead, UpdatePhase,
    UpdateProject,
)
from planejar.client.state import AppState, phase_payload

logger = logging.getLogger(__name__)


class Store:
    """
    Holds the ``AppState`` and runs every mutation through ``dispatch``.
    """

    def __init__(self, api: ApiClient, state: Optional[AppState] = None):
        self.api = api
        self.state = state or AppState()

    def dispatch(self, command: Command) -> Any:
        snapshot = copy.deepcopy(self.state)
        self.state = command.apply(self.state)
        try:
            result = command.commit()
        except ApiError as e:
            logger.warning(f"{type(command).__name__} failed: {e.message}")
            self.state = command.rollback(snapshot)
            self.state.error = e.message
            raise
        self.state = command.reconcile(self.state, result)
        self.state.error = None
        return result

    # ============= Session =============
    def login(self, email: str, password: str) -> dict:
        result = self.api.login(email, password)
        self.state.current_user = result["user"]
        self.state.token = result["token"]
        self.refresh()
        return result["user"]

    def logout(self) -> None:
        try:
            self.api.logout()
        except ApiError as e:
            logger.warning(f"Logout request failed: {e.message}")
        self.api.token = None
        self.state = AppState()

    def refresh(self) -> None:
        self.state.projects = self.api.list_projects()
        self.state.users = self._load_users()
        self.state.tasks = self.api.list_my_tasks()
        self.state.notifications = self.api.list_notifications()

    def _load_users(self) -> List[dict]:
        try:
            return self.api.list_users()
        except ApiError as e:
            if e.status_code != 403:
                raise
        return self._visible_users()

    def _visible_users(self) -> List[dict]:
        """Clients cannot list users; they see themselves and the members of their projects"""
        me = self.state.current_user
        seen = {str(me["id"]): me} if me else {}
        for project in self.state.projects:
            member_ids = [project.get("consultant_id"), project.get("auxiliary_id"), *project.get("client_ids", [])]
            for user_id in member_ids:
                if not user_id or str(user_id) in seen:
                    continue
                try:
                    seen[str(user_id)] = self.api.get_user(str(user_id))
                except ApiError as e:
                    logger.warning(f"Could not load user {user_id}: {e.message}")
        return list(seen.values())

    # ============= Mutations =============
    def create_project(self, payload: dict) -> dict:
        return self.dispatch(CreateProject(self.api, payload))

    def update_project(self, project_id: str, changes: dict) -> dict:
        return self.dispatch(UpdateProject(self.api, project_id, changes))

    def delete_project(self, project_id: str) -> None:
        self.dispatch(DeleteProject(self.api, project_id))

    def advance_phase(self, project_id: str, phase_number: int) -> dict:
        return self.dispatch(AdvancePhase(self.api, project_id, phase_number))

    def update_phase(self, project_id: str, phase_number: int, changes: dict) -> dict:
        return self.dispatch(UpdatePhase(self.api, project_id, phase_number, changes))

    def complete_task(self, task_id: str) -> dict:
        return self.dispatch(CompleteTask(self.api, task_id))

    def mark_notification_read(self, notification_id: str) -> dict:
        return self.dispatch(MarkNotificationRead(self.api, notification_id))

    # ============= Reads =============
    def phase_data(self, project_id: str, phase_number: int):
        project = self.state.find_project(project_id)
        if project is None:
            raise KeyError(project_id)
        return phase_payload(project, phase_number)
