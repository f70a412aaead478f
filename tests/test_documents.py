"""
Tests for project document upload, versioning and removal.
"""
import pytest
from fastapi import status


def upload(client, project, headers, name="contrato.pdf", phase_number=1, content=b"%PDF-1.4 v1"):
    return client.post(
        f"/projects/{project.id}/documents",
        data={"phase_number": str(phase_number)},
        files={"file": (name, content, "application/pdf")},
        headers=headers,
    )


@pytest.mark.integration
class TestDocuments:
    def test_upload_and_download(self, client, project, consultant_headers):
        response = upload(client, project, consultant_headers)
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["version"] == 1
        assert data["status"] == "active"
        assert data["url"] == f"/documents/{data['id']}/download"

        download = client.get(f"/documents/{data['id']}/download", headers=consultant_headers)
        assert download.status_code == status.HTTP_200_OK
        assert download.content == b"%PDF-1.4 v1"
        assert "contrato.pdf" in download.headers["content-disposition"]

    def test_same_name_creates_new_version(self, client, project, consultant_headers):
        first = upload(client, project, consultant_headers).json()
        second = upload(client, project, consultant_headers, content=b"%PDF-1.4 v2").json()
        assert second["version"] == 2

        active = client.get(f"/projects/{project.id}/documents?phase_number=1", headers=consultant_headers).json()
        assert [d["id"] for d in active] == [second["id"]]

        versions = client.get(f"/documents/{second['id']}/versions", headers=consultant_headers).json()
        assert [(v["version"], v["status"]) for v in versions] == [(2, "active"), (1, "deprecated")]
        assert versions[1]["id"] == first["id"]

    def test_delete_deprecates(self, client, project, consultant_headers):
        document = upload(client, project, consultant_headers).json()
        response = client.delete(f"/documents/{document['id']}", headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "deprecated"

        listed = client.get(
            f"/projects/{project.id}/documents?include_deprecated=true", headers=consultant_headers
        ).json()
        assert [d["id"] for d in listed] == [document["id"]]
        assert client.get(f"/projects/{project.id}/documents", headers=consultant_headers).json() == []

    def test_version_counts_only_active_documents(self, client, project, consultant_headers):
        document = upload(client, project, consultant_headers).json()
        client.delete(f"/documents/{document['id']}", headers=consultant_headers)
        again = upload(client, project, consultant_headers).json()
        assert again["version"] == 1

    def test_client_cannot_delete_staff_document(self, client, project, consultant_headers, partner_headers):
        document = upload(client, project, consultant_headers).json()
        response = client.delete(f"/documents/{document['id']}", headers=partner_headers[0])
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_empty_file_rejected(self, client, project, consultant_headers):
        response = upload(client, project, consultant_headers, content=b"")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_interested_client_cannot_upload(self, client, project, interested_headers):
        response = upload(client, project, interested_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_outsider_cannot_read(self, client, db_session, project, consultant_headers):
        from conftest import headers_for, make_user
        from planejar.models import Role

        document = upload(client, project, consultant_headers).json()
        outsider = make_user(db_session, "fora@test.com", Role.CLIENT)
        response = client.get(f"/documents/{document['id']}", headers=headers_for(outsider))
        assert response.status_code == status.HTTP_403_FORBIDDEN
