"""Admin / Audit API router."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import Authorize
from backoffice.db.session import get_db
from backoffice.schemas.schemas import ApiResponse, AuditLogOut
from backoffice.services.audit_service import audit_service
from backoffice.services.authorization import AuthContext, require_permission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit")
async def get_audit_logs(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    _: AuthContext = Depends(Authorize(require_permission("system.logs"))),
):
    """Query audit logs."""
    result = await audit_service.query_logs(
        db, actor_id, action, resource_type, page, page_size,
    )
    logs: List[AuditLogOut] = [AuditLogOut.model_validate(log) for log in result["logs"]]
    return ApiResponse.ok({
        "logs": logs,
        "total": result["total"],
        "page": result["page"],
        "page_size": result["page_size"],
    })


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """System health check — database connectivity."""
    db_ok = False
    try:
        await db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        logger.exception("Database health check failed")

    return {
        "mysql": "ok" if db_ok else "error",
        "status": "healthy" if db_ok else "degraded",
    }
