"""
Dashboard Models

- KPIResults: previously computed KPI summary (snake_case, as persisted)
- DMSData: DMS service-record delivery envelope
- ProcessedDashboardData: view model rendered by the dashboard cards
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from app.models.base import CamelModel


# ============== Pre-computed KPI Models ==============

class KPIValue(BaseModel):
    """Single KPI value with unit"""
    value: Optional[float] = None
    unit: str = ""


class PayerKPISummary(BaseModel):
    """Sales summary for one payer bucket"""
    total_sale: float = 0
    labor_sale: float = 0
    parts_sale: float = 0
    gross_profit: float = 0


class KPISet(BaseModel):
    """KPI block of a KPIResults document"""
    effective_labor_rate: Optional[KPIValue] = None
    labor_gp_percent: Optional[KPIValue] = None
    hrs_per_ro: Optional[KPIValue] = None
    labor_per_ro: Optional[KPIValue] = None
    parts_gp_percent: Optional[KPIValue] = None
    customer_pay: Optional[PayerKPISummary] = None
    warranty: Optional[PayerKPISummary] = None
    internal: Optional[PayerKPISummary] = None


class KPIMetadata(BaseModel):
    """Metadata of a KPIResults document"""
    total_repair_orders: int = 0


class KPIResults(BaseModel):
    """Previously persisted KPI summary used as a fallback"""
    kpis: Optional[KPISet] = None
    metadata: Optional[KPIMetadata] = None


# ============== DMS Delivery Envelope ==============

class DMSData(CamelModel):
    """DMS service-record delivery page"""
    request_id: str = ""
    message: str = ""
    page_size: int = 0
    total_records: int = 0
    total_records_in_page: int = 0
    records: List[Dict[str, Any]] = []


# ============== Processed Dashboard Models ==============

class DashboardKPIs(CamelModel):
    """Top-of-dashboard KPI gauges"""
    labor_gp_percent: float = Field(..., alias="laborGPPercent")
    labor_per_ro: float = Field(..., alias="laborPerRO")
    hours_per_ro: float = Field(..., alias="hoursPerRO")
    elr_total: float = Field(..., alias="elrTotal")


class DaySeries(CamelModel):
    """Day-bucketed series keyed by label"""
    months: List[str] = Field(default_factory=list, description="Day labels, e.g. 'Jul 2'")
    dates: List[str] = Field(default_factory=list, description="ISO day keys parallel to months")


class GrossProfitSeries(DaySeries):
    """Average GP% per day by payer bucket"""
    customer_pay: List[float] = []
    warranty: List[float] = []
    internal: List[float] = []


class ROCountSeries(DaySeries):
    """RO count per day by payer bucket"""
    customer_pay: List[int] = []
    warranty: List[int] = []
    internal: List[int] = []


class WarrantyOpportunity(CamelModel):
    """Warranty opportunity card"""
    current_labor_rate: float
    tracking_potential_hours: float
    current_parts_gp: float = Field(..., alias="currentPartsGP")
    tracking_potential_parts_gp: float = Field(..., alias="trackingPotentialPartsGP")


class TechnicianProduction(CamelModel):
    """Estimated hours per technician by payer bucket"""
    names: List[str] = []
    customer_pay: List[float] = []
    warranty: List[float] = []
    internal: List[float] = []


class AdvisorELR(CamelModel):
    """Advisor ranking by customer-pay labor per RO"""
    names: List[str] = []
    elr: List[float] = []


class OpcodeBreakdown(CamelModel):
    """Opcode mix card"""
    labels: List[str] = []
    values: List[float] = []


class ProcessedDashboardData(CamelModel):
    """Dashboard view model"""
    kpis: DashboardKPIs
    gross_profit: GrossProfitSeries
    ro_count: ROCountSeries
    warranty: WarrantyOpportunity
    technicians: TechnicianProduction
    advisors: AdvisorELR
    opcodes: OpcodeBreakdown
