"""
Dashboard metrics endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.schemas.metrics import DashboardMetrics
from app.services.metrics_service import dashboard_metrics
from app.services.tenant_service import Principal

router = APIRouter()


@router.get("/dashboard", response_model=DashboardMetrics)
def get_dashboard(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    """
    On-duty, pending, anomalies-today, active-guard and understaffed-unit counts.
    Read-only; available to viewers and to organizations whose subscription blocks writes.
    """
    return DashboardMetrics(**dashboard_metrics(db, principal.organization_id))
