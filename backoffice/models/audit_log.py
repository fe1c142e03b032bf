"""Audit trail of back-office mutations."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func

from backoffice.db.base import Base


class AuditLog(Base):
    """One row per role, permission, menu, assignment or plan change.

    Rows are only ever inserted. Old and new values are stored as JSON text
    so the trail survives later schema changes of the audited tables.
    """
    __tablename__ = "audit_logs"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    actor_email = Column(String(255), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False, index=True)
    resource_id = Column(String(100), nullable=True)
    old_value_json = Column(Text, nullable=True)
    new_value_json = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
