"""
Optimistic mutations for the client store.

A command changes the local state right away (``apply``), sends the
request (``commit``), then folds the server's answer back in
(``reconcile``). When the request fails the store hands the pre-apply
snapshot to ``rollback``.
"""
import logging
from typing import Any

from planejar.client.api_client import ApiClient, ApiError
from planejar.client.state import AppState, find_phase
from planejar.pipeline.phases import CONCLUSION_PHASE, LAST_PHASE

logger = logging.getLogger(__name__)


class Command:
    def __init__(self, api: ApiClient):
        self.api = api

    def apply(self, state: AppState) -> AppState:
        return state

    def commit(self) -> Any:
        raise NotImplementedError

    def reconcile(self, state: AppState, result: Any) -> AppState:
        return state

    def rollback(self, state: AppState) -> AppState:
        return state


class _ProjectCommand(Command):
    """Commands answered with the canonical project"""

    def __init__(self, api: ApiClient, project_id: str):
        super().__init__(api)
        self.project_id = str(project_id)

    def reconcile(self, state: AppState, result: Any) -> AppState:
        if result:
            state.replace_project(result)
        return state


class CreateProject(Command):
    def __init__(self, api: ApiClient, payload: dict):
        super().__init__(api)
        self.payload = payload

    def commit(self) -> Any:
        return self.api.create_project(self.payload)

    def reconcile(self, state: AppState, result: Any) -> AppState:
        state.replace_project(result)
        return state


class UpdateProject(_ProjectCommand):
    def __init__(self, api: ApiClient, project_id: str, changes: dict):
        super().__init__(api, project_id)
        self.changes = changes

    def apply(self, state: AppState) -> AppState:
        project = state.find_project(self.project_id)
        if project is not None:
            project.update(self.changes)
        return state

    def commit(self) -> Any:
        return self.api.update_project(self.project_id, self.changes)


class DeleteProject(_ProjectCommand):
    def apply(self, state: AppState) -> AppState:
        state.projects = [p for p in state.projects if str(p["id"]) != self.project_id]
        return state

    def commit(self) -> Any:
        return self.api.delete_project(self.project_id)

    def reconcile(self, state: AppState, result: Any) -> AppState:
        return state

    def rollback(self, state: AppState) -> AppState:
        # The server may have removed part of the project before failing
        try:
            state.projects = self.api.list_projects()
        except ApiError as e:
            logger.warning(f"Could not reload projects after failed delete: {e.message}")
        return state


class AdvancePhase(_ProjectCommand):
    def __init__(self, api: ApiClient, project_id: str, phase_number: int):
        super().__init__(api, project_id)
        self.phase_number = phase_number

    def apply(self, state: AppState) -> AppState:
        project = state.find_project(self.project_id)
        if project is None or project["current_phase_id"] != self.phase_number:
            return state
        if self.phase_number in (CONCLUSION_PHASE, LAST_PHASE):
            return state
        current = find_phase(project, self.phase_number)
        if current is not None:
            current["status"] = "completed"
        following = find_phase(project, self.phase_number + 1)
        if following is not None and following["status"] == "pending":
            following["status"] = "in-progress"
        project["current_phase_id"] = self.phase_number + 1
        return state

    def commit(self) -> Any:
        return self.api.advance_phase(self.project_id, self.phase_number)


class UpdatePhase(_ProjectCommand):
    def __init__(self, api: ApiClient, project_id: str, phase_number: int, changes: dict):
        super().__init__(api, project_id)
        self.phase_number = phase_number
        self.changes = changes

    def apply(self, state: AppState) -> AppState:
        project = state.find_project(self.project_id)
        phase = find_phase(project, self.phase_number) if project else None
        if phase is not None:
            if self.changes.get("status"):
                phase["status"] = self.changes["status"]
            if self.changes.get("phase_data"):
                phase["phase_data"] = {**phase.get("phase_data", {}), **self.changes["phase_data"]}
        return state

    def commit(self) -> Any:
        return self.api.update_phase(self.project_id, self.phase_number, self.changes)

    def reconcile(self, state: AppState, result: Any) -> AppState:
        project = state.find_project(self.project_id)
        if project is None or not result:
            return state
        project["phases"] = [
            result if phase["phase_number"] == self.phase_number else phase
            for phase in project.get("phases", [])
        ]
        return state


class CompleteTask(Command):
    def __init__(self, api: ApiClient, task_id: str):
        super().__init__(api)
        self.task_id = str(task_id)

    def apply(self, state: AppState) -> AppState:
        for task in state.tasks:
            if str(task["id"]) == self.task_id:
                task["status"] = "completed"
        return state

    def commit(self) -> Any:
        return self.api.complete_task(self.task_id)

    def reconcile(self, state: AppState, result: Any) -> AppState:
        # the task list only holds pending tasks
        state.tasks = [task for task in state.tasks if str(task["id"]) != self.task_id]
        return state


class MarkNotificationRead(Command):
    def __init__(self, api: ApiClient, notification_id: str):
        super().__init__(api)
        self.notification_id = str(notification_id)

    def apply(self, state: AppState) -> AppState:
        for notification in state.notifications:
            if str(notification["id"]) == self.notification_id:
                notification["is_read"] = True
        return state

    def commit(self) -> Any:
        return self.api.mark_notification_read(self.notification_id)
