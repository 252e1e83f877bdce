"""
Dashboard Data Processor

Rolls flat DMS service records (one row per RO) into the dashboard view model.

Key rules:
- Records are bucketed by day: Closed RO Date, else Open Date
- Daily GP% is the AVERAGE of per-record GP%, not GP of summed totals
- Scalar KPIs come from the live records whenever they carry labor sales,
  then from the stored KPI summary, then from fixed defaults
- Technician hours are estimated as labor sale / ELR

All monetary values are in DOLLARS.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple, Union

from app.models.dashboard_models import (
    AdvisorELR,
    DashboardKPIs,
    DMSData,
    GrossProfitSeries,
    KPIResults,
    KPIValue,
    OpcodeBreakdown,
    ProcessedDashboardData,
    ROCountSeries,
    TechnicianProduction,
    WarrantyOpportunity,
)
from app.models.enums import PayerType
from app.services.ro_parser import parse_monetary, parse_timestamp

logger = logging.getLogger(__name__)

# Fallback KPI values when neither records nor a stored summary are usable
DEFAULT_LABOR_GP_PERCENT = 0.0
DEFAULT_LABOR_PER_RO = 0.0
DEFAULT_HOURS_PER_RO = 1.29
DEFAULT_ELR = 177.5

# Labor rate used to estimate tech hours when ELR is not positive
FALLBACK_LABOR_RATE = 100.0  # $/hr

MAX_TECHNICIANS = 15
MAX_ADVISORS = 9

# Static cards, not yet derived from records
WARRANTY_OPPORTUNITY = {
    "current_labor_rate": 166.59,
    "tracking_potential_hours": 175.42,
    "current_parts_gp": 67,
    "tracking_potential_parts_gp": 69,
}
OPCODE_PLACEHOLDER = {
    "labels": ["MA10", "FS02", "DIAG", "99P", "BG44K"],
    "values": [35, 25, 20, 15, 5],
}

PAYERS = (PayerType.CUSTOMER, PayerType.WARRANTY, PayerType.INTERNAL)

DMSInput = Union[DMSData, Dict[str, Any], List[Dict[str, Any]], None]
KPIInput = Union[KPIResults, Dict[str, Any], None]


@dataclass
class DayBucket:
    """Per-day accumulators, keyed by payer"""
    counts: Dict[PayerType, int] = field(default_factory=lambda: {p: 0 for p in PAYERS})
    gp_sums: Dict[PayerType, float] = field(default_factory=lambda: {p: 0.0 for p in PAYERS})

    def add(self, payer: PayerType, sale: float, cost: float):
        if sale > 0:
            self.counts[payer] += 1
            self.gp_sums[payer] += ((sale - cost) / sale) * 100

    def average_gp(self, payer: PayerType) -> float:
        count = self.counts[payer]
        return self.gp_sums[payer] / count if count > 0 else 0.0


# ============== Record Helpers ==============

def _money(record: Dict[str, Any], column: str) -> float:
    value = record.get(column)
    return parse_monetary(str(value)) if value is not None else 0.0


def payer_amount(record: Dict[str, Any], payer: PayerType, kind: str, side: str) -> float:
    """Amount from a payer column, e.g. ('Customer', 'Labor', 'Sale')"""
    return _money(record, f"{payer.column_prefix} {kind} {side}")


def labor_sale(record: Dict[str, Any]) -> float:
    return sum(payer_amount(record, p, "Labor", "Sale") for p in PAYERS)


def labor_cost(record: Dict[str, Any]) -> float:
    return sum(payer_amount(record, p, "Labor", "Cost") for p in PAYERS)


def record_day(record: Dict[str, Any]) -> Optional[date]:
    """Closed RO Date, falling back to Open Date"""
    for column in ("Closed RO Date", "Open Date"):
        value = record.get(column)
        parsed = parse_timestamp(str(value).strip()) if value else None
        if parsed:
            return parsed.date()
    return None


def day_label(day: date) -> str:
    """Chart label, e.g. 'Jul 2'"""
    return f"{day.strftime('%b')} {day.day}"


def person_name(record: Dict[str, Any]) -> str:
    name = record.get("Service Advisor Name")
    return str(name).strip() if name and str(name).strip() else "Unknown"


def extract_records(dms_data: DMSInput) -> List[Dict[str, Any]]:
    """Accept a DMSData page, a dict shaped like one, or a bare record list"""
    if dms_data is None:
        return []
    if isinstance(dms_data, DMSData):
        return list(dms_data.records)
    if isinstance(dms_data, dict):
        return list(dms_data.get("records") or [])
    return list(dms_data)


def coerce_kpi_results(kpi_results: KPIInput) -> Optional[KPIResults]:
    if kpi_results is None or isinstance(kpi_results, KPIResults):
        return kpi_results
    return KPIResults.model_validate(kpi_results)


def _kpi(value: Optional[KPIValue], default: float) -> float:
    """Stored KPI value, default when the entry or its value is null"""
    if value is None or value.value is None:
        return default
    return value.value


def round_half_up(value: float, places: int) -> float:
    """Round like JavaScript toFixed: exact halves go away from zero"""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


# ============== Processor ==============

class DashboardProcessor:
    """Builds ProcessedDashboardData from service records."""

    def bucket_by_day(self, records: List[Dict[str, Any]]) -> Dict[date, DayBucket]:
        """
        Group records into day buckets.

        Records without a usable date are skipped here only; they still
        count toward the scalar KPIs.
        """
        buckets: Dict[date, DayBucket] = {}
        skipped = 0

        for record in records:
            day = record_day(record)
            if day is None:
                skipped += 1
                continue

            bucket = buckets.setdefault(day, DayBucket())
            for payer in PAYERS:
                bucket.add(
                    payer,
                    sale=payer_amount(record, payer, "Total", "Sale"),
                    cost=payer_amount(record, payer, "Total", "Cost")
                )

        if skipped:
            logger.debug(f"{skipped} records without Closed RO Date/Open Date excluded from day series")
        return buckets

    def calculate_kpis(
        self,
        records: List[Dict[str, Any]],
        kpi_results: Optional[KPIResults]
    ) -> Tuple[float, float, float, float]:
        """
        Returns (labor_gp_percent, labor_per_ro, hours_per_ro, elr), unrounded.
        """
        total_records = len(records)
        total_labor_sale = sum(labor_sale(r) for r in records)
        total_labor_cost = sum(labor_cost(r) for r in records)

        if total_records > 0 and total_labor_sale > 0:
            logger.debug(f"Calculating KPIs from {total_records} records "
                         f"(labor sale={total_labor_sale:.2f}, labor cost={total_labor_cost:.2f})")
            labor_gp_percent = ((total_labor_sale - total_labor_cost) / total_labor_sale) * 100
            labor_per_ro = total_labor_sale / total_records

            # ELR approximated as customer-pay labor per customer-pay RO (no hours in the feed)
            cp_sales = [payer_amount(r, PayerType.CUSTOMER, "Labor", "Sale") for r in records]
            cp_total = sum(cp_sales)
            cp_ros = sum(1 for sale in cp_sales if sale > 0)
            if cp_total > 0 and cp_ros > 0:
                elr = cp_total / cp_ros
            else:
                elr = total_labor_sale / total_records

            stored_hours = kpi_results.kpis.hrs_per_ro if kpi_results and kpi_results.kpis else None
            hours_per_ro = _kpi(stored_hours, 0) or DEFAULT_HOURS_PER_RO
            return labor_gp_percent, labor_per_ro, hours_per_ro, elr

        if kpi_results is not None and kpi_results.kpis is not None:
            logger.debug("No usable records, using stored KPI summary")
            kpis = kpi_results.kpis
            return (
                _kpi(kpis.labor_gp_percent, DEFAULT_LABOR_GP_PERCENT),
                _kpi(kpis.labor_per_ro, DEFAULT_LABOR_PER_RO),
                _kpi(kpis.hrs_per_ro, DEFAULT_HOURS_PER_RO),
                _kpi(kpis.effective_labor_rate, DEFAULT_ELR),
            )

        logger.debug("No records or KPI summary, using default KPIs")
        return DEFAULT_LABOR_GP_PERCENT, DEFAULT_LABOR_PER_RO, DEFAULT_HOURS_PER_RO, DEFAULT_ELR

    def rank_technicians(self, records: List[Dict[str, Any]], elr: float) -> TechnicianProduction:
        """Estimated hours (labor sale / ELR) per technician, top 15 by total"""
        rate = elr if elr > 0 else FALLBACK_LABOR_RATE
        hours: Dict[str, Dict[PayerType, float]] = {}

        for record in records:
            tech = hours.setdefault(person_name(record), {p: 0.0 for p in PAYERS})
            for payer in PAYERS:
                tech[payer] += payer_amount(record, payer, "Labor", "Sale") / rate

        ranked = sorted(hours.items(), key=lambda item: sum(item[1].values()), reverse=True)[:MAX_TECHNICIANS]

        return TechnicianProduction(
            names=[name for name, _ in ranked],
            customer_pay=[round_half_up(h[PayerType.CUSTOMER], 1) for _, h in ranked],
            warranty=[round_half_up(h[PayerType.WARRANTY], 1) for _, h in ranked],
            internal=[round_half_up(h[PayerType.INTERNAL], 1) for _, h in ranked],
        )

    def rank_advisors(self, records: List[Dict[str, Any]]) -> AdvisorELR:
        """Mean customer-pay labor sale per RO advised, top 9"""
        totals: Dict[str, List[float]] = {}

        for record in records:
            advisor = totals.setdefault(person_name(record), [0.0, 0])
            advisor[0] += payer_amount(record, PayerType.CUSTOMER, "Labor", "Sale")
            advisor[1] += 1

        ranked = sorted(
            ((name, total / count if count > 0 else 0.0) for name, (total, count) in totals.items()),
            key=lambda item: item[1],
            reverse=True
        )[:MAX_ADVISORS]

        return AdvisorELR(
            names=[name for name, _ in ranked],
            elr=[round_half_up(elr, 2) for _, elr in ranked],
        )

    def process(self, dms_data: DMSInput, kpi_results: KPIInput = None) -> ProcessedDashboardData:
        records = extract_records(dms_data)
        stored_kpis = coerce_kpi_results(kpi_results)

        buckets = self.bucket_by_day(records)
        days = sorted(buckets)
        labels = [day_label(d) for d in days]
        iso_days = [d.isoformat() for d in days]

        labor_gp_percent, labor_per_ro, hours_per_ro, elr = self.calculate_kpis(records, stored_kpis)

        return ProcessedDashboardData(
            kpis=DashboardKPIs(
                labor_gp_percent=round_half_up(labor_gp_percent, 1),
                labor_per_ro=round_half_up(labor_per_ro, 2),
                hours_per_ro=hours_per_ro,
                elr_total=elr,
            ),
            gross_profit=GrossProfitSeries(
                months=labels,
                dates=iso_days,
                customer_pay=[round_half_up(buckets[d].average_gp(PayerType.CUSTOMER), 1) for d in days],
                warranty=[round_half_up(buckets[d].average_gp(PayerType.WARRANTY), 1) for d in days],
                internal=[round_half_up(buckets[d].average_gp(PayerType.INTERNAL), 1) for d in days],
            ),
            ro_count=ROCountSeries(
                months=labels,
                dates=iso_days,
                customer_pay=[buckets[d].counts[PayerType.CUSTOMER] for d in days],
                warranty=[buckets[d].counts[PayerType.WARRANTY] for d in days],
                internal=[buckets[d].counts[PayerType.INTERNAL] for d in days],
            ),
            warranty=WarrantyOpportunity(**WARRANTY_OPPORTUNITY),
            technicians=self.rank_technicians(records, elr),
            advisors=self.rank_advisors(records),
            opcodes=OpcodeBreakdown(**OPCODE_PLACEHOLDER),
        )


def get_dashboard_processor() -> DashboardProcessor:
    """Factory function for DashboardProcessor."""
    return DashboardProcessor()


def process_dashboard_data(dms_data: DMSInput, kpi_results: KPIInput = None) -> ProcessedDashboardData:
    """Transform service records (and an optional stored KPI summary) into dashboard data."""
    return get_dashboard_processor().process(dms_data, kpi_results)
