"""
Pydantic Models for Request Validation
"""

from pydantic import Field
from typing import Optional

from app.models.dashboard_models import DMSData, KPIResults


# Dashboard Models
class DashboardProcessRequest(DMSData):
    """Service records (DMS delivery page) plus optional stored KPI summary"""
    kpi_results: Optional[KPIResults] = Field(None, description="Fallback KPI summary")
