"""
Unit tests for the pure workflow rules: qualification, approvals and the
document hand-off relays.
"""
import itertools
from types import SimpleNamespace

import pytest

from planejar.exceptions import AuthorizationError, BusinessLogicError, ValidationError
from planejar.models import ClientType
from planejar.pipeline import approvals, conclusion, diagnostic, handoff, integralization, quotas
from planejar.pipeline.phase_data import (
    DocumentRef, ITBIProcess, Phase1Data, Phase3Data, Phase4Data, Phase8Data, RegistrationProcess,
)
from planejar.pipeline.qualification import is_data_complete, missing_fields

BASE = {
    "cpf": "123.456.789-00",
    "rg": "12.345.678-9",
    "marital_status": "solteiro",
    "birth_date": "1980-01-01",
    "nationality": "brasileira",
    "address": "Rua A, 1",
}


def doc(doc_id="d1"):
    return DocumentRef(id=doc_id, name=f"{doc_id}.pdf")


@pytest.mark.unit
class TestQualification:
    def test_complete_single_partner(self):
        assert is_data_complete(BASE) is True

    def test_missing_base_field(self):
        data = {**BASE, "cpf": ""}
        assert is_data_complete(data) is False
        assert missing_fields(data) == ["cpf"]

    def test_married_needs_property_regime(self):
        data = {**BASE, "marital_status": "casado"}
        assert is_data_complete(data) is False
        assert is_data_complete({**data, "property_regime": "comunhao_parcial"}) is True

    def test_income_tax_declarant_needs_tax_return(self):
        data = {**BASE, "declares_income_tax": True}
        assert is_data_complete(data, [{"category": "identity"}]) is False
        assert is_data_complete(data, [{"category": "tax_return"}]) is True
        assert missing_fields(data) == ["tax_return"]

    def test_empty(self):
        assert is_data_complete(None) is False

    @pytest.mark.parametrize("marital_status", ["solteiro", "casado", "uniao_estavel", "divorciado", ""])
    @pytest.mark.parametrize("property_regime", ["", "comunhao_parcial"])
    @pytest.mark.parametrize("declares_income_tax", [False, True])
    @pytest.mark.parametrize("has_tax_return", [False, True])
    def test_every_combination(self, marital_status, property_regime, declares_income_tax, has_tax_return):
        other_fields = [f for f in BASE if f != "marital_status"]
        documents = [{"category": "identity"}] + ([{"category": "tax_return"}] if has_tax_return else [])
        for filled in itertools.product([False, True], repeat=len(other_fields)):
            data = {field: (BASE[field] if keep else "") for field, keep in zip(other_fields, filled)}
            data.update(
                marital_status=marital_status,
                property_regime=property_regime,
                declares_income_tax=declares_income_tax,
            )
            expected = (
                all(filled)
                and bool(marital_status)
                and (marital_status not in ("casado", "uniao_estavel") or bool(property_regime))
                and (not declares_income_tax or has_tax_return)
            )
            assert is_data_complete(data, documents) is expected, data
            assert (missing_fields(data, documents) == []) is expected, data


@pytest.mark.unit
class TestApprovals:
    def test_all_approved_ignores_non_partners(self):
        assert approvals.all_approved({"a": True, "b": True, "x": False}, ["a", "b"]) is True
        assert approvals.all_approved({"a": True}, ["a", "b"]) is False

    def test_no_partners_is_never_approved(self):
        assert approvals.all_approved({"a": True}, []) is False

    def test_partner_ids_skip_interested_clients(self):
        project = SimpleNamespace(clients=[
            SimpleNamespace(id="a", client_type=ClientType.PARTNER),
            SimpleNamespace(id="b", client_type=ClientType.INTERESTED),
        ])
        assert approvals.partner_ids_of(project) == ["a"]

    def test_draft_versions_and_approval(self):
        block = Phase4Data()
        approvals.add_draft(block, doc("v1"))
        second = approvals.add_draft(block, doc("v2"))
        assert second.version == 2
        assert block.status == "in_review"

        assert approvals.record_approval(block, "a", ["a", "b"]) is False
        assert approvals.record_approval(block, "b", ["a", "b"]) is True
        approvals.close_review(block, ["a", "b"])
        assert block.status == "approved"
        with pytest.raises(BusinessLogicError):
            approvals.add_draft(block, doc("v3"))

    def test_only_partners_approve(self):
        block = Phase4Data()
        approvals.add_draft(block, doc())
        with pytest.raises(AuthorizationError):
            approvals.record_approval(block, "consultor", ["a"])

    def test_nothing_to_approve(self):
        with pytest.raises(BusinessLogicError):
            approvals.record_approval(Phase4Data(), "a", ["a"])

    def test_empty_message(self):
        author = SimpleNamespace(id="a", name="Ana", role="client")
        with pytest.raises(ValidationError):
            approvals.add_discussion_message(Phase4Data(), author, "   ")


@pytest.mark.unit
class TestRelays:
    def test_itbi_relay_in_order(self):
        process = ITBIProcess(property_id="p1")
        assert handoff.attach_itbi_document(process, "guide", "g1", actor_is_staff=True) == "pending_payment"
        with pytest.raises(BusinessLogicError):
            handoff.attach_itbi_document(process, "guide", "g2", actor_is_staff=True)
        assert handoff.attach_itbi_document(process, "receipt", "r1", actor_is_staff=False) == "completed"
        assert (process.guide_doc_id, process.receipt_doc_id) == ("g1", "r1")

    def test_relay_sides_are_strict(self):
        process = ITBIProcess(property_id="p1")
        with pytest.raises(AuthorizationError):
            handoff.attach_itbi_document(process, "guide", "g1", actor_is_staff=False)
        handoff.attach_itbi_document(process, "guide", "g1", actor_is_staff=True)
        with pytest.raises(AuthorizationError):
            handoff.attach_itbi_document(process, "receipt", "r1", actor_is_staff=True)

    def test_unknown_slot(self):
        with pytest.raises(ValidationError):
            handoff.attach_itbi_document(ITBIProcess(property_id="p1"), "certificate", "x", True)

    def test_exemption(self):
        process = ITBIProcess(property_id="p1", process_type="isencao")
        with pytest.raises(BusinessLogicError):
            handoff.attach_itbi_document(process, "guide", "g1", actor_is_staff=True)
        handoff.approve_exemption(process)
        assert process.status == "exemption_approved"
        with pytest.raises(BusinessLogicError):
            handoff.approve_exemption(process)

    def test_registration_relay(self):
        process = RegistrationProcess(property_id="p1", registry_office="1º RI")
        relay = handoff.REGISTRATION_RELAY
        relay.attach(process, "fee_guide", "a", True)
        relay.attach(process, "fee_receipt", "b", False)
        assert relay.attach(process, "certificate", "c", True) == "completed"
        assert process.updated_certificate_doc_id == "c"

    def test_sync_is_additive(self):
        data = Phase3Data.model_validate({"assets": [
            {"id": "p1", "type": "property", "owner_partner_id": "a"},
            {"id": "c1", "type": "cash", "owner_partner_id": "a"},
        ]})
        from planejar.pipeline.phase_data import Phase5Data

        itbi = Phase5Data()
        assert handoff.sync_itbi_processes(itbi, data.properties()) == 1
        assert handoff.sync_itbi_processes(itbi, data.properties()) == 0


@pytest.mark.unit
class TestAssetsAndTransfers:
    def test_client_cannot_edit_assets_under_review(self):
        data = Phase3Data()
        integralization.add_asset(data, {"type": "vehicle"}, "a", actor_is_staff=False)
        integralization.submit_assets(data)
        with pytest.raises(BusinessLogicError):
            integralization.add_asset(data, {"type": "vehicle"}, "a", actor_is_staff=False)

    def test_client_cannot_set_review_fields(self):
        data = Phase3Data()
        asset = integralization.add_asset(data, {"type": "cash", "status": "aprovado"}, "a", actor_is_staff=False)
        assert asset.status == "pendente"

    def test_corrections_reopen_for_client(self):
        data = Phase3Data()
        integralization.add_asset(data, {"type": "cash"}, "a", actor_is_staff=False)
        integralization.submit_assets(data)
        integralization.request_corrections(data)
        assert data.status == "pending_client"

    def test_tax_exempt_only_before_guide(self):
        data = Phase8Data()
        transfer = quotas.create_transfer(data, {"type": "doacao", "donor_or_seller_id": "a"}, ["a", "b"])
        handoff.attach_tax_document(transfer, "guide", "g1", actor_is_staff=True)
        with pytest.raises(BusinessLogicError):
            handoff.mark_tax_exempt(transfer)

    def test_approved_transfer_is_frozen(self):
        data = Phase8Data()
        transfer = quotas.create_transfer(data, {"type": "venda", "donor_or_seller_id": "a"}, ["a"])
        approvals.add_draft(transfer, doc())
        assert quotas.approve_transfer(transfer, "a", ["a"]) is True
        with pytest.raises(BusinessLogicError):
            quotas.update_transfer(transfer, {"percentage": 50})


@pytest.mark.unit
class TestDiagnosticAndConclusion:
    def test_form_blocked_until_partner_data_complete(self):
        partner = SimpleNamespace(id="a", qualification_data={}, documents=[])
        with pytest.raises(BusinessLogicError):
            diagnostic.submit_diagnostic_form(Phase1Data(), {"objective": "x"}, [partner], actor_is_staff=False)

    def test_staff_fills_form_and_schedules(self):
        data = Phase1Data()
        partner = SimpleNamespace(id="a", qualification_data={}, documents=[])
        diagnostic.submit_diagnostic_form(data, {"objective": "Sucessão"}, [partner], actor_is_staff=True)
        assert data.objective == "Sucessão"
        steps = diagnostic.diagnostic_steps([partner], data)
        assert steps == {
            "data_verified": False, "form_completed": True, "meeting_scheduled": False, "minutes_recorded": False,
        }

    def test_meeting_needs_form(self):
        from datetime import datetime

        with pytest.raises(BusinessLogicError):
            diagnostic.schedule_meeting(Phase1Data(), datetime(2026, 1, 10, 14, 0), None)

    def test_invalid_post_completion_choice(self):
        from planejar.models import PostCompletionStatus

        project = SimpleNamespace(post_completion_status=PostCompletionStatus.PENDING_CHOICE)
        assert conclusion.post_completion_target(project, "agreement") == 9
        with pytest.raises(ValidationError):
            conclusion.post_completion_target(project, "outra")
