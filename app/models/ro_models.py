"""
Repair Order Parser Models

Structured output of the DMS RO parser:
- Header with customer and vehicle info
- Operations with nested labor and parts lines
- Per-record and batch parse results

All monetary values are in DOLLARS (floats), as delivered by the DMS export.
"""

from pydantic import Field
from typing import Optional, List

from app.models.base import FrozenCamelModel
from app.models.enums import ParserErrorType


# ============== Header Models ==============

class CustomerInfo(FrozenCamelModel):
    """Customer attached to the repair order"""
    customer_id: str = ""
    name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""


class VehicleInfo(FrozenCamelModel):
    """Vehicle attached to the repair order"""
    vin: str = ""
    year: str = ""
    make: str = ""
    model: str = ""
    mileage: int = Field(default=0, description="RO mileage in")


class ParsedROHeader(FrozenCamelModel):
    """RO header fields"""
    tenant_id: str = Field(..., description="DV Dealer ID or Vendor Dealer ID")
    ro_number: str = ""
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    vehicle_info: VehicleInfo = Field(default_factory=VehicleInfo)

    # Totals (dollars)
    total_amount: float = Field(default=0, description="Total sale (dollars)")
    labor_amount: float = Field(default=0, description="Total labor sale (dollars)")
    parts_amount: float = Field(default=0, description="Total parts sale (dollars)")
    tax_amount: float = Field(default=0, description="Total tax (dollars)")
    total_cost: float = Field(default=0, description="Total cost (dollars)")
    total_labor_cost: float = Field(default=0, description="Total labor cost (dollars)")
    total_parts_cost: float = Field(default=0, description="Total parts cost (dollars)")
    total_sublet_cost: float = Field(default=0, description="Total sublet cost (dollars)")
    total_sublet_sale: float = Field(default=0, description="Total sublet sale (dollars)")

    # Payer totals (dollars)
    customer_total_cost: float = 0
    customer_total_sale: float = 0
    warranty_total_cost: float = 0
    warranty_total_sale: float = 0
    internal_total_cost: float = 0
    internal_total_sale: float = 0

    created_at: str = Field(..., description="ISO 8601 timestamp")

    # Source identifiers
    dv_dealer_id: str = ""
    vendor_dealer_id: str = ""
    dms_type: str = ""

    # RO details
    open_date: str = ""
    close_date: str = ""
    service_advisor_number: str = ""
    service_advisor_name: str = ""
    ro_department: str = ""
    ro_store: str = ""
    ro_status: str = ""
    tag_number: str = ""

    # Appointment
    appointment_date: str = ""
    appointment_flag: str = ""
    appointment_number: str = ""


# ============== Line Item Models ==============

class ParsedLaborEntry(FrozenCamelModel):
    """Technician labor line"""
    technician_id: str
    technician_name: str = ""
    hours: float
    rate: float = Field(..., description="Labor rate (dollars/hr)")
    amount: float = Field(..., description="hours * rate (dollars)")


class ParsedPartEntry(FrozenCamelModel):
    """Part line"""
    part_number: str
    description: str = ""
    quantity: float
    unit_cost: float = Field(..., description="Cost per unit (dollars)")
    unit_sale: float = Field(..., description="Sale per unit (dollars)")
    total_cost: float = Field(..., description="quantity * unit_cost (dollars)")
    total_sale: float = Field(..., description="quantity * unit_sale (dollars)")


class ParsedOperation(FrozenCamelModel):
    """Operation (opcode) line with its labor and parts"""
    operation_code: str
    operation_description: str = ""
    line_number: int = 0
    sale_type: str = Field(default="", description="C=Customer, W=Warranty, I=Internal")
    labor_entries: List[ParsedLaborEntry] = []
    part_entries: List[ParsedPartEntry] = []

    # As reported by the DMS for this operation (dollars)
    operation_line_cost: float = 0
    operation_line_sale: float = 0
    labor_cost: float = 0
    labor_sale: float = 0
    labor_bill_hours: float = 0
    labor_bill_rate: float = Field(default=0, description="Billed labor rate (dollars/hr)")
    sublet_cost: float = 0
    sublet_sale: float = 0
    labor_complaint: str = ""
    labor_cause: str = ""
    labor_correction: str = ""

    # Always summed from the entries above
    total_labor_hours: float = 0
    total_labor_amount: float = 0
    total_parts_amount: float = 0


class ParsedROData(FrozenCamelModel):
    """Complete parsed repair order"""
    header: ParsedROHeader
    operations: List[ParsedOperation] = []


# ============== Result Models ==============

class ParserValidationError(FrozenCamelModel):
    """Field-level parse or validation error"""
    type: ParserErrorType
    field: str
    message: str


class ParserResult(FrozenCamelModel):
    """Outcome of parsing a single record"""
    success: bool
    data: Optional[ParsedROData] = None
    errors: List[ParserValidationError] = []
    warnings: List[str] = []


class BatchSummary(FrozenCamelModel):
    """Totals over the successfully parsed records of a batch"""
    total_operations: int = 0
    total_labor_entries: int = 0
    total_part_entries: int = 0
    tenants: List[str] = []


class BatchParserResult(FrozenCamelModel):
    """Outcome of parsing a batch of records"""
    total_records: int
    successful_records: int
    failed_records: int
    results: List[ParserResult] = []
    errors: List[ParserValidationError] = []
    warnings: List[str] = []
    summary: BatchSummary = Field(default_factory=BatchSummary)
