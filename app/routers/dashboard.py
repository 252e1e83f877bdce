"""
Dashboard Endpoints

Turns DMS service records into the dashboard view model:
- KPI gauges (labor GP%, labor per RO, hours per RO, ELR)
- Daily GP% and RO count by payer (customer / warranty / internal)
- Technician production and advisor ELR rankings
"""

import logging
import traceback

from fastapi import APIRouter, HTTPException

from app.models.schemas import DashboardProcessRequest
from app.services.dashboard_processor import get_dashboard_processor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process")
def process_dashboard(request: DashboardProcessRequest):
    """
    Build dashboard data from service records

    - **records**: Service records (one row per RO)
    - **kpiResults**: Optional stored KPI summary, used when records carry no labor sales
    """
    processor = get_dashboard_processor()

    try:
        data = processor.process(request, request.kpi_results)
    except Exception as e:
        error_trace = traceback.format_exc()
        logger.error(f"Dashboard processing error: {e}\n{error_trace}")
        raise HTTPException(status_code=500, detail=f"Dashboard processing error: {str(e)}")

    logger.info(f"Processed dashboard for {len(request.records)} records "
                f"({len(data.gross_profit.months)} days)")
    return data.model_dump(by_alias=True, mode="json")
