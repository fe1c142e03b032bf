"""Audit service — append-only trail of administrative mutations."""

import json
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.audit_log import AuditLog


def _as_json(value: Any) -> Optional[str]:
    return json.dumps(value, default=str, sort_keys=True) if value else None


def client_details(request: Request) -> Dict[str, Optional[str]]:
    """Caller IP and (truncated) user agent of ``request``."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent", "")[:500],
    }


class AuditService:
    """Writes and queries audit entries.

    Entries are flushed into the caller's session, so an entry is
    committed or rolled back together with the change it describes.
    """

    @staticmethod
    async def log(
        db: AsyncSession,
        action: str,
        resource_type: str,
        resource_id: Any = None,
        actor_id: Optional[int] = None,
        actor_email: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Write a single audit log record.

        Args:
            action: dotted verb such as "role.created" or "user_role.assigned"
            resource_type: role, permission, menu, user_role, subscription, user
        """
        entry = AuditLog(
            actor_id=actor_id,
            actor_email=actor_email,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_value_json=_as_json(old_value),
            new_value_json=_as_json(new_value),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def log_action(
        db: AsyncSession,
        request: Request,
        actor,
        action: str,
        resource_type: str,
        resource_id: Any = None,
        old_value: Any = None,
        new_value: Any = None,
    ) -> AuditLog:
        """Record a mutation performed by ``actor`` (an authorized request context)."""
        return await AuditService.log(
            db, action, resource_type, resource_id,
            actor_id=actor.user_id,
            actor_email=actor.email,
            old_value=old_value,
            new_value=new_value,
            **client_details(request),
        )

    @staticmethod
    async def query_logs(
        db: AsyncSession,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """Newest-first page of entries matching the filters."""
        filters = []
        if actor_id:
            filters.append(AuditLog.actor_id == actor_id)
        if action:
            filters.append(AuditLog.action.ilike(f"%{action}%"))
        if resource_type:
            filters.append(AuditLog.resource_type == resource_type)

        total = await db.scalar(select(func.count(AuditLog.id)).where(*filters))
        rows = await db.scalars(
            select(AuditLog)
            .where(*filters)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return {"logs": list(rows), "total": total, "page": page, "page_size": page_size}


audit_service = AuditService()
