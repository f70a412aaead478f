from dataclasses import dataclass, field
from typing import Dict, List, Optional

from planejar.pipeline.phase_data import load_phase_data


@dataclass
class AppState:
    """Client-side mirror of what the signed-in user can see"""
    current_user: Optional[dict] = None
    token: Optional[str] = None
    projects: List[dict] = field(default_factory=list)
    users: List[dict] = field(default_factory=list)
    tasks: List[dict] = field(default_factory=list)
    notifications: List[dict] = field(default_factory=list)
    error: Optional[str] = None

    def find_project(self, project_id: str) -> Optional[dict]:
        for project in self.projects:
            if str(project["id"]) == str(project_id):
                return project
        return None

    def replace_project(self, project: dict) -> None:
        for index, existing in enumerate(self.projects):
            if str(existing["id"]) == str(project["id"]):
                self.projects[index] = project
                return
        self.projects.append(project)

    @property
    def users_by_id(self) -> Dict[str, dict]:
        return {str(user["id"]): user for user in self.users}


def find_phase(project: dict, phase_number: int) -> Optional[dict]:
    for phase in project.get("phases", []):
        if phase["phase_number"] == phase_number:
            return phase
    return None


def phase_payload(project: dict, phase_number: int):
    """The phase's data as the typed model for that phase number"""
    phase = find_phase(project, phase_number)
    return load_phase_data(phase_number, phase.get("phase_data") if phase else None)
