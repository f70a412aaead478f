"""
Document hand-off relays (ITBI, registration and the quota-transfer tax).

A relay is a fixed sequence of document slots. Each slot belongs to one side
(staff or client) and is only open while the process is in the slot's
starting status; attaching a document stores its id and moves the process
exactly one step forward. There is no way to skip a step or go back.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from planejar.exceptions import AuthorizationError, BusinessLogicError, NotFoundError, ValidationError
from planejar.pipeline.phase_data import (
    ITBIProcess,
    Phase5Data,
    Phase6Data,
    PropertyAsset,
    QuotaTransferProcess,
    RegistrationProcess,
)


@dataclass(frozen=True)
class RelayStep:
    slot: str
    field: str
    from_status: str
    to_status: str
    staff: bool


@dataclass(frozen=True)
class Relay:
    name: str
    status_field: str
    steps: Tuple[RelayStep, ...]

    def step_for(self, slot: str) -> RelayStep:
        for step in self.steps:
            if step.slot == slot:
                return step
        raise ValidationError(
            f"Documento inválido para {self.name}: {slot}",
            details={"slots": [s.slot for s in self.steps]},
        )

    def current_step(self, process) -> Optional[RelayStep]:
        status = getattr(process, self.status_field)
        for step in self.steps:
            if step.from_status == status:
                return step
        return None

    def attach(self, process, slot: str, document_id: str, actor_is_staff: bool) -> str:
        step = self.step_for(slot)
        if step.staff != actor_is_staff:
            side = "da equipe" if step.staff else "do cliente"
            raise AuthorizationError(f"Este documento é de responsabilidade {side}")
        current = getattr(process, self.status_field)
        if current != step.from_status:
            raise BusinessLogicError(
                "Esta etapa não está disponível no momento",
                details={"status": current, "expected": step.from_status},
            )
        setattr(process, step.field, document_id)
        setattr(process, self.status_field, step.to_status)
        return step.to_status


ITBI_RELAY = Relay(
    name="itbi",
    status_field="status",
    steps=(
        RelayStep("guide", "guide_doc_id", "pending_guide", "pending_payment", staff=True),
        RelayStep("receipt", "receipt_doc_id", "pending_payment", "completed", staff=False),
    ),
)

REGISTRATION_RELAY = Relay(
    name="registro",
    status_field="status",
    steps=(
        RelayStep("fee_guide", "fee_guide_doc_id", "pending_fee_guide", "pending_fee_payment", staff=True),
        RelayStep("fee_receipt", "fee_receipt_doc_id", "pending_fee_payment", "pending_registration", staff=False),
        RelayStep("certificate", "updated_certificate_doc_id", "pending_registration", "completed", staff=True),
    ),
)

TAX_RELAY = Relay(
    name="itcd",
    status_field="tax_payment_status",
    steps=(
        RelayStep("guide", "tax_guide_doc_id", "pending_guide", "pending_payment", staff=True),
        RelayStep("receipt", "tax_receipt_doc_id", "pending_payment", "completed", staff=False),
    ),
)


def _find(processes: List, property_id: str, label: str):
    for process in processes:
        if process.property_id == property_id:
            return process
    raise NotFoundError(label, property_id)


def find_itbi_process(data: Phase5Data, property_id: str) -> ITBIProcess:
    return _find(data.itbi_processes, property_id, "ITBI process")


def find_registration_process(data: Phase6Data, property_id: str) -> RegistrationProcess:
    return _find(data.registration_processes, property_id, "Registration process")


def sync_itbi_processes(data: Phase5Data, properties: Iterable[PropertyAsset]) -> int:
    """Add a process for every property that does not have one yet."""
    known = {p.property_id for p in data.itbi_processes}
    added = 0
    for asset in properties:
        if asset.id not in known:
            data.itbi_processes.append(ITBIProcess(property_id=asset.id))
            added += 1
    return added


def sync_registration_processes(data: Phase6Data, properties: Iterable[PropertyAsset]) -> int:
    known = {p.property_id for p in data.registration_processes}
    added = 0
    for asset in properties:
        if asset.id not in known:
            data.registration_processes.append(
                RegistrationProcess(property_id=asset.id, registry_office=asset.registry_office or "")
            )
            added += 1
    return added


def attach_itbi_document(process: ITBIProcess, slot: str, document_id: str, actor_is_staff: bool) -> str:
    if process.process_type == "isencao":
        raise BusinessLogicError("Processo de isenção não possui guia de pagamento")
    return ITBI_RELAY.attach(process, slot, document_id, actor_is_staff)


def approve_exemption(process: ITBIProcess) -> None:
    if process.process_type != "isencao":
        raise BusinessLogicError("Somente processos de isenção podem ser deferidos")
    if process.status != "pending_guide":
        raise BusinessLogicError("Processo já está em andamento")
    process.status = "exemption_approved"


def attach_tax_document(transfer: QuotaTransferProcess, slot: str, document_id: str, actor_is_staff: bool) -> str:
    return TAX_RELAY.attach(transfer, slot, document_id, actor_is_staff)


def mark_tax_exempt(transfer: QuotaTransferProcess) -> None:
    if transfer.tax_payment_status != "pending_guide":
        raise BusinessLogicError("O recolhimento do imposto já foi iniciado")
    transfer.tax_payment_status = "exempt"
