import enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Enum, Text, Integer, JSON, Table, UniqueConstraint, Index,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from planejar.db import Base
from planejar.pipeline.qualification import user_is_data_complete

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _values(enum_cls):
    return [member.value for member in enum_cls]


def _enum(enum_cls, name: str):
    # Persist enum values ("in-progress") rather than member names
    return Enum(enum_cls, name=name, values_callable=_values, validate_strings=True)


class Role(str, enum.Enum):
    CLIENT = "client"
    CONSULTANT = "consultant"
    AUXILIARY = "auxiliary"
    ADMINISTRATOR = "administrator"


class ClientType(str, enum.Enum):
    PARTNER = "partner"
    INTERESTED = "interested"


class DocumentCategory(str, enum.Enum):
    IDENTITY = "identity"
    ADDRESS = "address"
    MARRIAGE = "marriage"
    TAX_RETURN = "tax_return"
    OTHER = "other"


class ProjectStatus(str, enum.Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class PostCompletionStatus(str, enum.Enum):
    PENDING_CHOICE = "pending_choice"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PhaseStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    AWAITING_APPROVAL = "awaiting-approval"  # declared, never assigned
    COMPLETED = "completed"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    APPROVED = "approved"


class DocumentType(str, enum.Enum):
    PDF = "pdf"
    DOC = "doc"
    OTHER = "other"


class DocumentStatus(str, enum.Enum):
    ACTIVE = "active"
    DEPRECATED = "deprecated"


class ChatType(str, enum.Enum):
    CLIENT = "client"
    INTERNAL = "internal"


class NotificationType(str, enum.Enum):
    MESSAGE = "message"
    TASK = "task"
    ALERT = "alert"


STAFF_ROLES = (Role.CONSULTANT, Role.AUXILIARY, Role.ADMINISTRATOR)


project_clients = Table(
    "project_clients",
    Base.metadata,
    Column("project_id", UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=datetime.utcnow, nullable=False),
)


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(_enum(Role, "role"), nullable=False)
    client_type = Column(_enum(ClientType, "client_type"), nullable=True)
    avatar_url = Column(String(1000), nullable=True)
    requires_password_change = Column(Boolean, default=False, nullable=False)
    # cpf, rg, marital_status, property_regime, birth_date, nationality, address, phone, declares_income_tax
    qualification_data = Column(JSONType, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    documents = relationship(
        "UserDocument", back_populates="user", cascade="all, delete-orphan", order_by="UserDocument.uploaded_at"
    )
    projects = relationship("Project", secondary=project_clients, back_populates="clients")
    password_reset_tokens = relationship("PasswordResetToken", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def data_complete(self) -> bool:
        return user_is_data_complete(self)


class UserDocument(Base):
    """Personal document owned by a user, independent of any project"""
    __tablename__ = "user_documents"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(500), nullable=False)
    category = Column(_enum(DocumentCategory, "document_category"), nullable=False)
    url = Column(String(1000), nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="documents")


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(255), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="password_reset_tokens")


class Project(Base):
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(500), nullable=False)
    status = Column(_enum(ProjectStatus, "project_status"), default=ProjectStatus.IN_PROGRESS, nullable=False)
    current_phase_id = Column(Integer, default=1, nullable=False)
    consultant_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    auxiliary_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    post_completion_status = Column(_enum(PostCompletionStatus, "post_completion_status"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    consultant = relationship("User", foreign_keys=[consultant_id])
    auxiliary = relationship("User", foreign_keys=[auxiliary_id])
    clients = relationship(
        "User", secondary=project_clients, back_populates="projects", order_by=project_clients.c.created_at
    )
    phases = relationship(
        "Phase", back_populates="project", cascade="all, delete-orphan", order_by="Phase.phase_number"
    )
    chat_messages = relationship(
        "ChatMessage", back_populates="project", cascade="all, delete-orphan", order_by="ChatMessage.created_at"
    )
    activity_log = relationship(
        "ActivityLogEntry", back_populates="project", cascade="all, delete-orphan",
        order_by="ActivityLogEntry.created_at.desc()"
    )
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="project", cascade="all, delete-orphan")

    @property
    def client_ids(self):
        return [client.id for client in self.clients]

    def get_phase(self, phase_number: int):
        for phase in self.phases:
            if phase.phase_number == phase_number:
                return phase
        return None


class Phase(Base):
    __tablename__ = "phases"
    __table_args__ = (UniqueConstraint("project_id", "phase_number", name="uq_phase_project_number"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    phase_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(_enum(PhaseStatus, "phase_status"), default=PhaseStatus.PENDING, nullable=False)
    phase_data = Column(JSONType, default=dict)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="phases")


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_assignee_status", "assignee_id", "status"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    phase_number = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(_enum(TaskStatus, "task_status"), default=TaskStatus.PENDING, nullable=False)
    assignee_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assignee_role = Column(_enum(Role, "role"), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    related_document_id = Column(UUID(as_uuid=True), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    created_by_ai = Column(Boolean, default=False, nullable=False)
    completed_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    approved_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="tasks")
    assignee = relationship("User", foreign_keys=[assignee_id])


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (Index("ix_documents_project_phase", "project_id", "phase_number"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    phase_number = Column(Integer, nullable=False)
    name = Column(String(500), nullable=False)
    url = Column(String(1000), nullable=True)
    storage_key = Column(String(1000), nullable=False)
    content_type = Column(String(255), nullable=True)
    size_bytes = Column(Integer, nullable=True)
    type = Column(_enum(DocumentType, "document_type"), nullable=False)
    uploaded_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    version = Column(Integer, default=1, nullable=False)
    status = Column(_enum(DocumentStatus, "document_status"), default=DocumentStatus.ACTIVE, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="documents")
    uploader = relationship("User", foreign_keys=[uploaded_by_id])


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    chat_type = Column(_enum(ChatType, "chat_type"), nullable=False)
    author_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    author_name = Column(String(255), nullable=False)
    author_role = Column(_enum(Role, "role"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="chat_messages")


class ActivityLogEntry(Base):
    __tablename__ = "activity_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_name = Column(String(255), nullable=False)
    action = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="activity_log")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(1000), nullable=True)
    type = Column(_enum(NotificationType, "notification_type"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="notifications")
