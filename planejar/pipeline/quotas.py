"""
Phase 8: quota transfers (donation or sale) between partners.

Each transfer carries its own draft/approval block and its own tax relay.
"""
import uuid
from typing import Iterable

from planejar.exceptions import BusinessLogicError, NotFoundError, ValidationError
from planejar.pipeline import approvals
from planejar.pipeline.phase_data import Phase8Data, QuotaTransferProcess

EDITABLE_FIELDS = ("beneficiary_or_buyer_ids", "percentage", "transaction_value", "observations")


def create_transfer(data: Phase8Data, payload: dict, partner_ids: Iterable[str]) -> QuotaTransferProcess:
    members = {str(p) for p in partner_ids}
    donor = str(payload.get("donor_or_seller_id") or "")
    if donor not in members:
        raise ValidationError("O doador/vendedor deve ser sócio do projeto")
    kind = payload.get("type")
    try:
        transfer = QuotaTransferProcess(
            id=str(uuid.uuid4()),
            type=kind,
            donor_or_seller_id=donor,
            beneficiary_or_buyer_ids=[str(b) for b in payload.get("beneficiary_or_buyer_ids") or []],
            percentage=payload.get("percentage"),
            transaction_value=payload.get("transaction_value"),
            observations=payload.get("observations") or "",
            # ITCD is only due on donations
            tax_payment_status="pending_guide" if kind == "doacao" else "exempt",
        )
    except ValueError as exc:
        raise ValidationError("Dados da transferência inválidos", details={"errors": str(exc)}) from exc
    data.transfer_processes.append(transfer)
    return transfer


def find_transfer(data: Phase8Data, transfer_id: str) -> QuotaTransferProcess:
    for transfer in data.transfer_processes:
        if transfer.id == transfer_id:
            return transfer
    raise NotFoundError("Transfer", transfer_id)


def update_transfer(transfer: QuotaTransferProcess, changes: dict) -> None:
    if transfer.status == "approved":
        raise BusinessLogicError("A transferência já foi aprovada")
    for field in EDITABLE_FIELDS:
        if field in changes:
            setattr(transfer, field, changes[field])


def approve_transfer(transfer: QuotaTransferProcess, user_id: str, partner_ids: Iterable[str]) -> bool:
    """Record a partner approval; the transfer closes itself on the last one."""
    if approvals.record_approval(transfer, user_id, partner_ids):
        transfer.status = "approved"
        return True
    return False
