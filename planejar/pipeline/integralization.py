"""
Phase 3: assets the partners contribute to the company's capital.
"""
import uuid

from planejar.exceptions import BusinessLogicError, NotFoundError, ValidationError
from planejar.pipeline.phase_data import Phase3Data, asset_adapter

# Fields only the consultant team fills in while reviewing
REVIEW_FIELDS = {"status", "consultant_observations", "market_value"}


def _check_editable(data: Phase3Data, actor_is_staff: bool) -> None:
    if data.status == "approved":
        raise BusinessLogicError("Os bens já foram aprovados")
    if not actor_is_staff and data.status != "pending_client":
        raise BusinessLogicError("Os bens estão em análise pelo consultor")


def find_asset(data: Phase3Data, asset_id: str):
    for asset in data.assets:
        if asset.id == asset_id:
            return asset
    raise NotFoundError("Asset", asset_id)


def add_asset(data: Phase3Data, payload: dict, owner_id: str, actor_is_staff: bool):
    _check_editable(data, actor_is_staff)
    values = {k: v for k, v in payload.items() if actor_is_staff or k not in REVIEW_FIELDS}
    values["id"] = str(uuid.uuid4())
    values.setdefault("owner_partner_id", owner_id)
    values.setdefault("status", "pendente")
    try:
        asset = asset_adapter.validate_python(values)
    except ValueError as exc:
        raise ValidationError("Dados do bem inválidos", details={"errors": str(exc)}) from exc
    data.assets.append(asset)
    return asset


def update_asset(data: Phase3Data, asset_id: str, changes: dict, actor_is_staff: bool):
    asset = find_asset(data, asset_id)
    review_only = set(changes) <= REVIEW_FIELDS
    if not (actor_is_staff and review_only):
        _check_editable(data, actor_is_staff)
    if not actor_is_staff and set(changes) & REVIEW_FIELDS:
        raise BusinessLogicError("Somente o consultor pode alterar a análise do bem")
    merged = {**asset.model_dump(), **changes, "id": asset.id}
    try:
        updated = asset_adapter.validate_python(merged)
    except ValueError as exc:
        raise ValidationError("Dados do bem inválidos", details={"errors": str(exc)}) from exc
    data.assets[data.assets.index(asset)] = updated
    return updated


def remove_asset(data: Phase3Data, asset_id: str, actor_is_staff: bool) -> None:
    _check_editable(data, actor_is_staff)
    data.assets.remove(find_asset(data, asset_id))


def submit_assets(data: Phase3Data) -> None:
    # Only reachable from pending_client, so a repeated submit changes nothing
    if data.status != "pending_client":
        raise BusinessLogicError("Os bens já foram enviados para análise")
    if not data.assets:
        raise BusinessLogicError("Adicione ao menos um bem antes de enviar")
    data.status = "pending_consultant_review"


def approve_assets(data: Phase3Data) -> None:
    if data.status != "pending_consultant_review":
        raise BusinessLogicError("Os bens não estão aguardando análise")
    data.status = "approved"


def request_corrections(data: Phase3Data) -> None:
    """Send the asset list back to the client, e.g. after flagging assets em_correcao."""
    if data.status != "pending_consultant_review":
        raise BusinessLogicError("Os bens não estão aguardando análise")
    data.status = "pending_client"
