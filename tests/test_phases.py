"""
Tests for the phase action endpoints.
"""
import pytest
from fastapi import status

from planejar.models import PhaseStatus, PostCompletionStatus
from planejar.pipeline.phase_data import load_phase_data
from planejar.pipeline.state_machine import enter_phase


def start_phase(db_session, project, number):
    """Put ``project`` at phase ``number`` with every earlier phase completed."""
    for phase in project.phases:
        if phase.phase_number < number:
            phase.status = PhaseStatus.COMPLETED
    enter_phase(project, number)
    db_session.commit()
    db_session.refresh(project)


def with_property(db_session, project):
    project.get_phase(3).phase_data = {
        "phase": 3,
        "assets": [{"id": "imovel-1", "type": "property", "owner_partner_id": "x", "registry_office": "2º RI"}],
        "status": "approved",
    }
    db_session.commit()


def upload(client, project, headers, phase_number, name="guia.pdf"):
    response = client.post(
        f"/projects/{project.id}/documents",
        data={"phase_number": str(phase_number)},
        files={"file": (name, b"%PDF-1.4 conteudo", "application/pdf")},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["id"]


@pytest.mark.integration
class TestPhaseAccess:
    def test_get_phase(self, client, project, consultant_headers):
        response = client.get(f"/projects/{project.id}/phases/1", headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "in-progress"

    def test_phase_number_out_of_range(self, client, project, consultant_headers):
        response = client.get(f"/projects/{project.id}/phases/11", headers=consultant_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_write_to_pending_phase_is_rejected(self, client, project, partner_headers):
        response = client.post(
            f"/projects/{project.id}/phases/3/assets",
            json={"type": "vehicle", "description": "Carro"},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["message"] == "Esta fase ainda não foi iniciada"

    def test_interested_client_is_read_only(self, client, db_session, project, interested_headers):
        start_phase(db_session, project, 3)
        headers = interested_headers
        assert client.get(f"/projects/{project.id}/phases/3", headers=headers).status_code == status.HTTP_200_OK
        response = client.post(
            f"/projects/{project.id}/phases/3/assets",
            json={"type": "vehicle", "description": "Carro"},
            headers=headers,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_client_cannot_edit_completed_phase(self, client, db_session, project, partner_headers):
        start_phase(db_session, project, 2)
        response = client.post(
            f"/projects/{project.id}/phases/1/diagnostic-form",
            json={"objective": "Sucessão"},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_client_cannot_change_phase_status(self, client, project, partner_headers):
        response = client.put(
            f"/projects/{project.id}/phases/1",
            json={"status": "completed"},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_staff_cannot_start_a_pending_phase(self, client, db_session, project, consultant_headers):
        response = client.put(
            f"/projects/{project.id}/phases/5",
            json={"status": "in-progress"},
            headers=consultant_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        db_session.refresh(project)
        in_progress = [p.phase_number for p in project.phases if p.status == PhaseStatus.IN_PROGRESS]
        assert in_progress == [1]

    def test_partner_cannot_write_approvals_directly(self, client, db_session, project, partners, partner_headers):
        start_phase(db_session, project, 4)
        response = client.put(
            f"/projects/{project.id}/phases/4",
            json={"phase_data": {"approvals": {str(p.id): True for p in partners}, "status": "approved"}},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        db_session.refresh(project)
        data = load_phase_data(4, project.get_phase(4).phase_data)
        assert data.status == "pending_draft"
        assert data.approvals == {}

    def test_client_cannot_complete_itbi_process_directly(self, client, db_session, project, partner_headers):
        with_property(db_session, project)
        start_phase(db_session, project, 5)
        response = client.put(
            f"/projects/{project.id}/phases/5",
            json={"phase_data": {"itbi_processes": [{"property_id": "imovel-1", "status": "completed"}]}},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN
        db_session.refresh(project)
        assert load_phase_data(5, project.get_phase(5).phase_data).itbi_processes[0].status == "pending_guide"

    def test_staff_cannot_write_workflow_fields(self, client, db_session, project, consultant_headers):
        with_property(db_session, project)
        start_phase(db_session, project, 5)
        response = client.put(
            f"/projects/{project.id}/phases/5",
            json={"phase_data": {"itbi_processes": [{"property_id": "imovel-1", "status": "completed"}]}},
            headers=consultant_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"]["fields"] == ["itbi_processes"]

    def test_staff_edits_free_fields(self, client, project, consultant_headers):
        response = client.put(
            f"/projects/{project.id}/phases/1",
            json={"phase_data": {"consultant_checklist": {"documentos_conferidos": True}}},
            headers=consultant_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["phase_data"]["consultant_checklist"] == {"documentos_conferidos": True}
        assert response.json()["status"] == "in-progress"


@pytest.mark.integration
class TestAssets:
    def test_submit_twice_is_rejected(self, client, db_session, project, partner_headers):
        start_phase(db_session, project, 3)
        base = f"/projects/{project.id}/phases/3"
        response = client.post(
            f"{base}/assets",
            json={"type": "property", "description": "Apartamento", "registry_office": "1º RI"},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.json()["phase_data"]["assets"]) == 1

        first = client.post(f"{base}/submit", headers=partner_headers[0])
        assert first.status_code == status.HTTP_200_OK
        assert first.json()["phase_data"]["status"] == "pending_consultant_review"

        second = client.post(f"{base}/submit", headers=partner_headers[0])
        assert second.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert second.json()["message"] == "Os bens já foram enviados para análise"

    def test_submit_without_assets(self, client, db_session, project, partner_headers):
        start_phase(db_session, project, 3)
        response = client.post(f"/projects/{project.id}/phases/3/submit", headers=partner_headers[0])
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_asset_requires_type(self, client, db_session, project, partner_headers):
        start_phase(db_session, project, 3)
        response = client.post(
            f"/projects/{project.id}/phases/3/assets",
            json={"description": "Sem tipo"},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_only_staff_approves(self, client, db_session, project, partner_headers, consultant_headers):
        start_phase(db_session, project, 3)
        base = f"/projects/{project.id}/phases/3"
        client.post(f"{base}/assets", json={"type": "cash", "value": 1000}, headers=partner_headers[0])
        client.post(f"{base}/submit", headers=partner_headers[0])

        assert client.post(f"{base}/approve", headers=partner_headers[0]).status_code == status.HTTP_403_FORBIDDEN
        response = client.post(f"{base}/approve", headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["phase_data"]["status"] == "approved"


@pytest.mark.integration
class TestItbiRelay:
    def test_guide_moves_process_to_payment(self, client, db_session, project, consultant_headers, partner_headers):
        with_property(db_session, project)
        start_phase(db_session, project, 5)
        base = f"/projects/{project.id}/phases/5/processes/imovel-1/documents"

        guide_id = upload(client, project, consultant_headers, 5)
        response = client.post(base, json={"slot": "guide", "document_id": guide_id}, headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        process = response.json()["phase_data"]["itbi_processes"][0]
        assert process["status"] == "pending_payment"
        assert process["guide_doc_id"] == guide_id

        receipt_id = upload(client, project, partner_headers[0], 5, name="comprovante.pdf")
        response = client.post(base, json={"slot": "receipt", "document_id": receipt_id}, headers=partner_headers[0])
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["phase_data"]["itbi_processes"][0]["status"] == "completed"

    def test_client_cannot_attach_staff_slot(self, client, db_session, project, partner_headers):
        with_property(db_session, project)
        start_phase(db_session, project, 5)
        document_id = upload(client, project, partner_headers[0], 5)
        response = client.post(
            f"/projects/{project.id}/phases/5/processes/imovel-1/documents",
            json={"slot": "guide", "document_id": document_id},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_receipt_before_guide_is_rejected(self, client, db_session, project, partner_headers):
        with_property(db_session, project)
        start_phase(db_session, project, 5)
        document_id = upload(client, project, partner_headers[0], 5)
        response = client.post(
            f"/projects/{project.id}/phases/5/processes/imovel-1/documents",
            json={"slot": "receipt", "document_id": document_id},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_document_from_other_phase_is_rejected(self, client, db_session, project, consultant_headers):
        with_property(db_session, project)
        start_phase(db_session, project, 5)
        document_id = upload(client, project, consultant_headers, 4)
        response = client.post(
            f"/projects/{project.id}/phases/5/processes/imovel-1/documents",
            json={"slot": "guide", "document_id": document_id},
            headers=consultant_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.integration
class TestDraftReview:
    def test_partners_approve_then_consultant_closes(
        self, client, db_session, project, consultant_headers, partner_headers
    ):
        start_phase(db_session, project, 4)
        base = f"/projects/{project.id}/phases/4"
        document_id = upload(client, project, consultant_headers, 4, name="minuta.pdf")
        response = client.post(f"{base}/drafts", json={"document_id": document_id}, headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["phase_data"]["status"] == "in_review"

        client.post(f"{base}/approve-draft", headers=partner_headers[0])
        early = client.post(f"{base}/close-review", headers=consultant_headers)
        assert early.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        client.post(f"{base}/approve-draft", headers=partner_headers[1])
        response = client.post(f"{base}/close-review", headers=consultant_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["phase_data"]["status"] == "approved"

    def test_staff_cannot_approve_draft(self, client, db_session, project, consultant_headers):
        start_phase(db_session, project, 4)
        base = f"/projects/{project.id}/phases/4"
        document_id = upload(client, project, consultant_headers, 4, name="minuta.pdf")
        client.post(f"{base}/drafts", json={"document_id": document_id}, headers=consultant_headers)
        response = client.post(f"{base}/approve-draft", headers=consultant_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_review_actions_only_on_review_phases(self, client, project, consultant_headers):
        response = client.post(
            f"/projects/{project.id}/phases/5/discussion", json={"content": "Oi"}, headers=consultant_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.integration
class TestConclusion:
    def test_finalize_requires_previous_phases(self, client, db_session, project, consultant_headers):
        project.current_phase_id = 7
        project.get_phase(7).status = PhaseStatus.IN_PROGRESS
        db_session.commit()
        response = client.post(f"/projects/{project.id}/phases/7/finalize", json={}, headers=consultant_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_finalize_and_choose_quotas(self, client, db_session, project, consultant_headers, partner_headers):
        start_phase(db_session, project, 7)
        response = client.post(
            f"/projects/{project.id}/phases/7/finalize",
            json={"consultant_observations": "Tudo certo"},
            headers=consultant_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["post_completion_status"] == "pending_choice"
        phase7 = next(p for p in body["phases"] if p["phase_number"] == 7)
        assert phase7["status"] == "completed"
        assert phase7["phase_data"]["status"] == "completed"

        feedback = client.post(
            f"/projects/{project.id}/phases/7/feedback",
            json={"rating": 5, "comment": "Excelente", "would_recommend": True},
            headers=partner_headers[0],
        )
        assert feedback.status_code == status.HTTP_200_OK
        assert feedback.json()["phase_data"]["feedback"]["rating"] == 5

        choice = client.post(
            f"/projects/{project.id}/post-completion-choice", json={"choice": "quotas"}, headers=partner_headers[0]
        )
        assert choice.status_code == status.HTTP_200_OK
        assert choice.json()["current_phase_id"] == 8
        assert choice.json()["post_completion_status"] == "in_progress"

    def test_choice_without_pending_choice(self, client, project, partner_headers):
        response = client.post(
            f"/projects/{project.id}/post-completion-choice", json={"choice": "agreement"}, headers=partner_headers[0]
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_invalid_feedback_rating(self, client, db_session, project, consultant_headers, partner_headers):
        start_phase(db_session, project, 7)
        client.post(f"/projects/{project.id}/phases/7/finalize", json={}, headers=consultant_headers)
        response = client.post(
            f"/projects/{project.id}/phases/7/feedback", json={"rating": 9}, headers=partner_headers[0]
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.integration
class TestQuotaTransfers:
    def test_donation_needs_itcd_and_sale_is_exempt(self, client, db_session, project, partners, consultant_headers):
        start_phase(db_session, project, 8)
        base = f"/projects/{project.id}/phases/8/transfers"
        donation = client.post(
            base,
            json={"type": "doacao", "donor_or_seller_id": str(partners[0].id),
                  "beneficiary_or_buyer_ids": [str(partners[1].id)], "percentage": 10},
            headers=consultant_headers,
        )
        assert donation.status_code == status.HTTP_201_CREATED
        sale = client.post(
            base,
            json={"type": "venda", "donor_or_seller_id": str(partners[1].id), "transaction_value": 5000},
            headers=consultant_headers,
        )
        transfers = sale.json()["phase_data"]["transfer_processes"]
        assert [t["tax_payment_status"] for t in transfers] == ["pending_guide", "exempt"]

    def test_donor_must_be_partner(self, client, db_session, project, consultant_user, consultant_headers):
        start_phase(db_session, project, 8)
        response = client.post(
            f"/projects/{project.id}/phases/8/transfers",
            json={"type": "doacao", "donor_or_seller_id": str(consultant_user.id)},
            headers=consultant_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_last_partner_approval_approves_transfer(
        self, client, db_session, project, partners, consultant_headers, partner_headers
    ):
        start_phase(db_session, project, 8)
        created = client.post(
            f"/projects/{project.id}/phases/8/transfers",
            json={"type": "venda", "donor_or_seller_id": str(partners[0].id)},
            headers=consultant_headers,
        )
        transfer_id = created.json()["phase_data"]["transfer_processes"][0]["id"]
        base = f"/projects/{project.id}/phases/8/transfers/{transfer_id}"
        document_id = upload(client, project, consultant_headers, 8, name="alteracao.pdf")
        client.post(f"{base}/drafts", json={"document_id": document_id}, headers=consultant_headers)

        first = client.post(f"{base}/approve", headers=partner_headers[0])
        assert first.json()["phase_data"]["transfer_processes"][0]["status"] != "approved"
        last = client.post(f"{base}/approve", headers=partner_headers[1])
        assert last.status_code == status.HTTP_200_OK
        assert last.json()["phase_data"]["transfer_processes"][0]["status"] == "approved"


@pytest.mark.integration
class TestSupport:
    def test_support_unavailable_before_conclusion(self, client, db_session, project, partner_headers):
        start_phase(db_session, project, 10)
        response = client.post(
            f"/projects/{project.id}/phases/10/requests", json={"title": "Alterar endereço"},
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_open_and_answer_request(self, client, db_session, project, consultant_headers, partner_headers):
        start_phase(db_session, project, 7)
        client.post(f"/projects/{project.id}/phases/7/finalize", json={}, headers=consultant_headers)
        db_session.refresh(project)
        project.post_completion_status = PostCompletionStatus.IN_PROGRESS
        start_phase(db_session, project, 10)

        created = client.post(
            f"/projects/{project.id}/phases/10/requests",
            json={"title": "Alterar endereço", "category": "alteration"},
            headers=partner_headers[0],
        )
        assert created.status_code == status.HTTP_201_CREATED
        request = created.json()["phase_data"]["requests"][0]
        assert request["priority"] == "medium"

        answered = client.post(
            f"/projects/{project.id}/phases/10/requests/{request['id']}/messages",
            json={"content": "Vamos providenciar"},
            headers=consultant_headers,
        )
        assert answered.status_code == status.HTTP_200_OK
        data = load_phase_data(10, answered.json()["phase_data"])
        assert data.requests[0].messages[0].content == "Vamos providenciar"


@pytest.mark.integration
class TestConstitution:
    def test_company_data_submit_approve_and_register(
        self, client, db_session, project, partners, consultant_headers, partner_headers
    ):
        start_phase(db_session, project, 2)
        base = f"/projects/{project.id}/phases/2"
        response = client.put(
            f"{base}/company",
            json={
                "company_data": {"name": "Holding Teste Ltda", "type": "LTDA"},
                "partners": [{"user_id": str(partners[0].id), "is_administrator": True, "participation": 60}],
            },
            headers=partner_headers[0],
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()["phase_data"]
        assert data["company_data"]["name"] == "Holding Teste Ltda"
        assert [p["user_id"] for p in data["partners"]] == [str(partners[0].id), str(partners[1].id)]
        assert data["partners"][0]["is_administrator"] is True

        assert client.post(f"{base}/submit", headers=partner_headers[0]).status_code == status.HTTP_200_OK
        locked = client.put(f"{base}/company", json={"company_data": {"name": "Outro"}}, headers=partner_headers[1])
        assert locked.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        approved = client.post(f"{base}/approve", headers=consultant_headers)
        assert approved.json()["phase_data"]["status"] == "approved"

        client.post(f"{base}/start-process", headers=consultant_headers)
        for slot in ("contract", "cnpj"):
            document_id = upload(client, project, consultant_headers, 2, name=f"{slot}.pdf")
            response = client.post(
                f"{base}/documents", json={"slot": slot, "document_id": document_id}, headers=consultant_headers
            )
        assert response.json()["phase_data"]["process_status"] == "completed"

    def test_unknown_partner_rejected(self, client, db_session, project, consultant_user, consultant_headers):
        start_phase(db_session, project, 2)
        response = client.put(
            f"/projects/{project.id}/phases/2/company",
            json={"partners": [{"user_id": str(consultant_user.id), "participation": 10}]},
            headers=consultant_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.integration
class TestAgreement:
    def test_terms_feedback_and_signature(self, client, db_session, project, consultant_headers, partner_headers):
        start_phase(db_session, project, 9)
        base = f"/projects/{project.id}/phases/9"
        terms = client.put(
            f"{base}/terms",
            json={"included_clauses": ["tag_along", "drag_along"], "consultant_observations": "Padrão"},
            headers=consultant_headers,
        )
        assert terms.json()["phase_data"]["included_clauses"] == ["tag_along", "drag_along"]
        assert client.put(f"{base}/terms", json={"included_clauses": []}, headers=partner_headers[0]).status_code == 403

        feedback = client.post(f"{base}/client-feedback", json={"client_feedback": "De acordo"}, headers=partner_headers[0])
        assert feedback.json()["phase_data"]["client_feedback"] == "De acordo"

        signed_id = upload(client, project, consultant_headers, 9, name="acordo_assinado.pdf")
        early = client.post(f"{base}/signed", json={"document_id": signed_id}, headers=consultant_headers)
        assert early.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        draft_id = upload(client, project, consultant_headers, 9, name="acordo.pdf")
        client.post(f"{base}/drafts", json={"document_id": draft_id}, headers=consultant_headers)
        for headers in partner_headers:
            client.post(f"{base}/approve-draft", headers=headers)
        client.post(f"{base}/close-review", headers=consultant_headers)

        signed = client.post(f"{base}/signed", json={"document_id": signed_id}, headers=consultant_headers)
        assert signed.status_code == status.HTTP_200_OK
        assert signed.json()["phase_data"]["final_signed_document_id"] == signed_id
