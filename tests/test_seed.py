"""
Tests for the startup seed data.
"""
import pytest
from fastapi import status

from planejar.models import Project, User
from planejar.seed import CONSULTANT_EMAIL, DEMO_PROJECT_NAME, seed_all


@pytest.mark.integration
class TestSeed:
    def test_seed_is_idempotent(self, db_session):
        seed_all(db_session)
        seed_all(db_session)
        assert db_session.query(User).count() == 5
        assert db_session.query(Project).filter(Project.name == DEMO_PROJECT_NAME).count() == 1

    def test_demo_project_lists_joao_first(self, db_session):
        seed_all(db_session)
        project = db_session.query(Project).filter(Project.name == DEMO_PROJECT_NAME).one()
        assert [c.email for c in project.clients] == ["joao.completo@email.com", "maria.completo@email.com"]
        assert project.consultant.email == CONSULTANT_EMAIL
        assert project.current_phase_id == 1

    def test_seeded_clients_log_in(self, client, db_session):
        seed_all(db_session)
        response = client.post("/auth/login", json={"email": "joao.completo@email.com", "password": "123"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["data_complete"] is True

        response = client.post("/auth/login", json={"email": "maria.completo@email.com", "password": "123"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["data_complete"] is False

    def test_seed_resets_staff_password(self, client, db_session):
        seed_all(db_session)
        consultant = db_session.query(User).filter(User.email == CONSULTANT_EMAIL).one()
        consultant.password_hash = "x"
        consultant.requires_password_change = True
        db_session.commit()

        seed_all(db_session)
        response = client.post("/auth/login", json={"email": CONSULTANT_EMAIL, "password": "250500"})
        assert response.status_code == status.HTTP_200_OK
