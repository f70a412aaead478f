"""
Phase 9: shareholders' agreement terms and the signed copy.
"""
from datetime import datetime
from typing import List, Optional

from planejar.exceptions import BusinessLogicError
from planejar.pipeline.phase_data import Phase9Data


def update_terms(data: Phase9Data, included_clauses: Optional[List[str]], consultant_observations: Optional[str]) -> None:
    if included_clauses is not None:
        if data.status == "approved":
            raise BusinessLogicError("O acordo já foi aprovado")
        data.included_clauses = list(included_clauses)
    if consultant_observations is not None:
        data.consultant_observations = consultant_observations


def set_client_feedback(data: Phase9Data, feedback: str) -> None:
    if data.status == "approved":
        raise BusinessLogicError("O acordo já foi aprovado")
    data.client_feedback = feedback


def register_signed_agreement(data: Phase9Data, document_id: str) -> None:
    if data.status != "approved":
        raise BusinessLogicError("O acordo precisa estar aprovado antes da assinatura")
    data.final_signed_document_id = document_id
    data.signature_date = datetime.utcnow()
