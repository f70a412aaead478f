"""
Demo data loaded on startup when SEED_ON_STARTUP is set.

Every function is idempotent: existing users get their password, role and
name synced, and the demo project is only created once.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from planejar.auth import get_password_hash
from planejar.models import ClientType, DocumentCategory, Project, ProjectStatus, Role, User, UserDocument, project_clients
from planejar.pipeline.state_machine import build_phases, log_activity

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@planejar.com"
CONSULTANT_EMAIL = "diego.garcia@grupociatos.com.br"
AUXILIARY_EMAIL = "servicos@grupociatos.com.br"
DEMO_PROJECT_NAME = "Holding Família Completo"

STAFF_USERS = [
    (Role.ADMINISTRATOR, ADMIN_EMAIL, "Administrador", "admin123"),
    (Role.CONSULTANT, CONSULTANT_EMAIL, "Diego Garcia", "250500"),
    (Role.AUXILIARY, AUXILIARY_EMAIL, "Serviços Grupo Ciatos", "123456"),
]

COMPLETE_QUALIFICATION = {
    "cpf": "123.456.789-00",
    "rg": "12.345.678-9",
    "marital_status": "casado",
    "property_regime": "comunhao_parcial",
    "birth_date": "1965-04-12",
    "nationality": "Brasileira",
    "address": "Rua das Flores, 100, São Paulo - SP",
    "phone": "(11) 99999-0000",
    "profession": "Empresário",
    "declares_income_tax": True,
}

CLIENT_USERS = [
    (
        "joao.completo@email.com", "João Completo", COMPLETE_QUALIFICATION,
        [
            ("rg_joao.pdf", DocumentCategory.IDENTITY),
            ("comprovante_residencia_joao.pdf", DocumentCategory.ADDRESS),
            ("certidao_casamento_joao.pdf", DocumentCategory.MARRIAGE),
            ("irpf_2024_joao.pdf", DocumentCategory.TAX_RETURN),
        ],
    ),
    (
        "maria.completo@email.com", "Maria Completo", {"marital_status": "casado"},
        [("rg_maria.pdf", DocumentCategory.IDENTITY)],
    ),
]
CLIENT_PASSWORD = "123"


def _sync_user(db: Session, role: Role, email: str, name: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            client_type=ClientType.PARTNER if role == Role.CLIENT else None,
            qualification_data={},
            is_active=True,
        )
        db.add(user)
        db.flush()
        logger.info(f"Seed user created: {email} ({role.value})")
    else:
        user.password_hash = get_password_hash(password)
        user.role = role
        user.name = name
        user.is_active = True
        logger.info(f"Seed user synced: {email} ({role.value})")
    user.requires_password_change = False
    return user


def seed_staff_users(db: Session) -> dict:
    users = {email: _sync_user(db, role, email, name, password) for role, email, name, password in STAFF_USERS}
    db.commit()
    return users


def seed_client_users(db: Session) -> list:
    clients = []
    for email, name, qualification, documents in CLIENT_USERS:
        user = _sync_user(db, Role.CLIENT, email, name, CLIENT_PASSWORD)
        user.qualification_data = dict(qualification)
        existing = {doc.name for doc in user.documents}
        for doc_name, category in documents:
            if doc_name not in existing:
                db.add(UserDocument(
                    user_id=user.id, name=doc_name, category=category, url=f"/seed/{doc_name}"
                ))
        clients.append(user)
    db.commit()
    for user in clients:
        db.refresh(user)
    return clients


def seed_demo_project(db: Session, consultant: User, auxiliary: User, clients: list) -> Project:
    project = db.query(Project).filter(Project.name == DEMO_PROJECT_NAME).first()
    if project:
        return project
    project = Project(
        name=DEMO_PROJECT_NAME,
        status=ProjectStatus.IN_PROGRESS,
        current_phase_id=1,
        consultant_id=consultant.id,
        auxiliary_id=auxiliary.id,
    )
    project.phases = build_phases()
    db.add(project)
    db.flush()
    linked_at = datetime.utcnow()
    for position, user in enumerate(clients):
        db.execute(project_clients.insert().values(
            project_id=project.id, user_id=user.id, created_at=linked_at + timedelta(microseconds=position)
        ))
    log_activity(db, project, consultant, "criou o projeto.")
    db.commit()
    db.refresh(project)
    logger.info(f"Seed project created: {DEMO_PROJECT_NAME}")
    return project


def seed_all(db: Session) -> None:
    staff = seed_staff_users(db)
    clients = seed_client_users(db)
    seed_demo_project(db, staff[CONSULTANT_EMAIL], staff[AUXILIARY_EMAIL], clients)
