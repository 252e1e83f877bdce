"""
DMS Repair Order (RO) Parser

Decodes flattened DMS export rows into structured repair orders:
- Multi-tenant: every record must carry a dealer ID
- "|" separates per-operation values inside a column
- Labor and parts lines are paired across sibling columns by index
- Malformed numbers coerce to 0, they never fail a record

Errors come in two tiers. A record without a dealer ID cannot be attributed
to a tenant and aborts immediately (single "general" error). Anything else is
collected as field-level validation errors so one pass reports every problem.

All monetary values are in DOLLARS.
"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from app.models.enums import ParserErrorType
from app.models.ro_models import (
    BatchParserResult,
    BatchSummary,
    CustomerInfo,
    ParsedLaborEntry,
    ParsedOperation,
    ParsedPartEntry,
    ParsedROData,
    ParsedROHeader,
    ParserResult,
    ParserValidationError,
    VehicleInfo,
)

logger = logging.getLogger(__name__)

OPERATION_DELIMITER = "|"

# Sibling columns paired by index
LABOR_COLUMNS = ("Tech Number", "Tech Name", "Labor Tech Hours", "Labor Tech Rate")
PART_COLUMNS = ("Part Number", "Part Description", "Part Quantity", "Parts Unit Cost", "Parts Unit Sale")

# Per-operation values reported by the DMS, indexed like Operation Codes
OPERATION_AMOUNT_COLUMNS = {
    "operation_line_cost": "Operation Line Cost",
    "operation_line_sale": "Operation Line Sale",
    "labor_cost": "Labor Cost",
    "labor_sale": "Labor Sale",
    "labor_bill_hours": "Labor Bill Hours",
    "labor_bill_rate": "Labor Bill Rate",
    "sublet_cost": "Sublet Cost",
    "sublet_sale": "Sublet Sale",
}
OPERATION_TEXT_COLUMNS = {
    "labor_complaint": "Labor Complaint",
    "labor_cause": "Labor Cause",
    "labor_correction": "Labor Correction",
}

_FLOAT_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^[+-]?\d+")


class TenantNotFoundError(ValueError):
    """Record carries neither a DV Dealer ID nor a Vendor Dealer ID"""


# ============== Coercion Helpers ==============

def _field(record: Dict[str, Any], column: str) -> str:
    """Get a column as a stripped string ('' when missing)"""
    value = record.get(column)
    if value is None:
        return ""
    return str(value).strip()


def parse_numeric(value: Optional[str]) -> float:
    """
    Parse a numeric string, 0 when empty or unparseable.

    Like JavaScript parseFloat, a valid leading number is kept ("1.5h" -> 1.5).
    """
    if value is None:
        return 0.0
    match = _FLOAT_PREFIX.match(str(value).strip())
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def parse_monetary(value: Optional[str]) -> float:
    """Parse a currency string like "6,929.96", 0 when empty or unparseable."""
    if value is None:
        return 0.0
    return parse_numeric(str(value).replace(",", ""))


def parse_integer(value: Optional[str]) -> int:
    """Parse a base-10 integer string, 0 when empty or unparseable."""
    if value is None:
        return 0
    match = _INT_PREFIX.match(str(value).strip())
    return int(match.group(0)) if match else 0


def split_by_operations(value: Optional[str]) -> List[str]:
    """Split a column by the operation delimiter, [] when empty."""
    if value is None or str(value).strip() == "":
        return []
    return str(value).split(OPERATION_DELIMITER)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse MM/DD/YYYY or ISO 8601 dates, None when unparseable."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%m/%d/%Y")
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


# ============== Header ==============

def extract_tenant_id(record: Dict[str, Any]) -> str:
    """
    Extract the tenant (dealer) ID.

    Prefers DV Dealer ID, falls back to Vendor Dealer ID.

    Raises:
        TenantNotFoundError: when both columns are empty
    """
    tenant_id = _field(record, "DV Dealer ID") or _field(record, "Vendor Dealer ID")
    if not tenant_id:
        raise TenantNotFoundError("No tenant/dealer ID found in record")
    return tenant_id


def parse_customer_info(record: Dict[str, Any]) -> CustomerInfo:
    name = _field(record, "Full Name") or " ".join(
        part for part in (_field(record, "First Name"), _field(record, "Last Name")) if part
    )
    phone = next(
        (p for p in (_field(record, "Cell Phone"), _field(record, "Home Phone"), _field(record, "Work Phone")) if p),
        ""
    )
    state_zip = " ".join(p for p in (_field(record, "State"), _field(record, "Zip Code")) if p)
    address = ", ".join(
        p for p in (
            _field(record, "Address Line 1"),
            _field(record, "Address Line 2"),
            _field(record, "City"),
            state_zip
        ) if p
    )

    return CustomerInfo(
        customer_id=_field(record, "Customer Number"),
        name=name,
        phone=phone,
        email=_field(record, "Email 1"),
        address=address
    )


def parse_vehicle_info(record: Dict[str, Any]) -> VehicleInfo:
    return VehicleInfo(
        vin=_field(record, "VIN"),
        year=_field(record, "Year"),
        make=_field(record, "Make"),
        model=_field(record, "Model"),
        mileage=parse_integer(_field(record, "RO Mileage"))
    )


def parse_ro_header(record: Dict[str, Any], tenant_id: str) -> ParsedROHeader:
    """Parse RO header, customer and vehicle info"""
    opened = parse_timestamp(_field(record, "Open Date"))
    created_at = opened.isoformat() if opened else datetime.now(timezone.utc).isoformat()

    return ParsedROHeader(
        tenant_id=tenant_id,
        ro_number=_field(record, "RO Number"),
        customer_info=parse_customer_info(record),
        vehicle_info=parse_vehicle_info(record),
        total_amount=parse_monetary(_field(record, "Total Sale")),
        labor_amount=parse_monetary(_field(record, "Total Labor Sale")),
        parts_amount=parse_monetary(_field(record, "Total Parts Sale")),
        tax_amount=parse_monetary(_field(record, "Total Tax")),
        total_cost=parse_monetary(_field(record, "Total Cost")),
        total_labor_cost=parse_monetary(_field(record, "Total Labor Cost")),
        total_parts_cost=parse_monetary(_field(record, "Total Parts Cost")),
        total_sublet_cost=parse_monetary(_field(record, "Total Sublet Cost")),
        total_sublet_sale=parse_monetary(_field(record, "Total Sublet Sale")),
        customer_total_cost=parse_monetary(_field(record, "Customer Total Cost")),
        customer_total_sale=parse_monetary(_field(record, "Customer Total Sale")),
        warranty_total_cost=parse_monetary(_field(record, "Warranty Total Cost")),
        warranty_total_sale=parse_monetary(_field(record, "Warranty Total Sale")),
        internal_total_cost=parse_monetary(_field(record, "Internal Total Cost")),
        internal_total_sale=parse_monetary(_field(record, "Internal Total Sale")),
        created_at=created_at,
        dv_dealer_id=_field(record, "DV Dealer ID"),
        vendor_dealer_id=_field(record, "Vendor Dealer ID"),
        dms_type=_field(record, "DMS Type"),
        open_date=_field(record, "Open Date"),
        close_date=_field(record, "Close Date"),
        service_advisor_number=_field(record, "Service Advisor Number"),
        service_advisor_name=_field(record, "Service Advisor Name"),
        ro_department=_field(record, "RO Department"),
        ro_store=_field(record, "RO Store"),
        ro_status=_field(record, "RO Status"),
        tag_number=_field(record, "Tag Number"),
        appointment_date=_field(record, "Appointment Date"),
        appointment_flag=_field(record, "Appointment Flag"),
        appointment_number=_field(record, "Appointment Number")
    )


# ============== Line Items ==============

def split_sibling_columns(
    record: Dict[str, Any],
    columns: Tuple[str, ...],
    warnings: List[str]
) -> List[Tuple[str, ...]]:
    """
    Split sibling columns by "|" and zip them by index.

    Columns of unequal length get a warning and are padded with '' up to the
    longest one, so no line is dropped and short columns coerce to 0.
    """
    split = [split_by_operations(_field(record, column)) for column in columns]
    lengths = [len(values) for values in split]
    longest = max(lengths) if lengths else 0

    if len(set(lengths)) > 1:
        detail = ", ".join(f"{column}={length}" for column, length in zip(columns, lengths))
        warnings.append(f"Line item columns have mismatched value counts ({detail})")

    return [
        tuple(values[i].strip() if i < len(values) else "" for values in split)
        for i in range(longest)
    ]


def parse_labor_entries(record: Dict[str, Any], warnings: List[str]) -> List[ParsedLaborEntry]:
    """Labor lines with a technician and positive hours"""
    entries = []
    for tech_id, tech_name, hours_str, rate_str in split_sibling_columns(record, LABOR_COLUMNS, warnings):
        hours = parse_numeric(hours_str)
        if not tech_id or hours <= 0:
            continue
        rate = parse_monetary(rate_str)
        entries.append(ParsedLaborEntry(
            technician_id=tech_id,
            technician_name=tech_name,
            hours=hours,
            rate=rate,
            amount=hours * rate
        ))
    return entries


def parse_part_entries(record: Dict[str, Any], warnings: List[str]) -> List[ParsedPartEntry]:
    """Part lines with a part number and positive quantity"""
    entries = []
    for part_number, description, qty_str, cost_str, sale_str in split_sibling_columns(record, PART_COLUMNS, warnings):
        quantity = parse_numeric(qty_str)
        if not part_number or quantity <= 0:
            continue
        unit_cost = parse_monetary(cost_str)
        unit_sale = parse_monetary(sale_str)
        entries.append(ParsedPartEntry(
            part_number=part_number,
            description=description,
            quantity=quantity,
            unit_cost=unit_cost,
            unit_sale=unit_sale,
            total_cost=quantity * unit_cost,
            total_sale=quantity * unit_sale
        ))
    return entries


# ============== Operations ==============

def build_operation(
    code: str,
    description: str,
    line_number: int,
    sale_type: str,
    labor_entries: List[ParsedLaborEntry],
    part_entries: List[ParsedPartEntry],
    **reported: Any
) -> ParsedOperation:
    """
    Assemble an operation, deriving totals from its entries.

    `reported` carries the DMS per-operation columns (line, labor and sublet
    amounts, complaint/cause/correction). They are kept as given and never
    replace the derived totals.
    """
    return ParsedOperation(
        operation_code=code,
        operation_description=description,
        line_number=line_number,
        sale_type=sale_type,
        labor_entries=labor_entries,
        part_entries=part_entries,
        total_labor_hours=sum(e.hours for e in labor_entries),
        total_labor_amount=sum(e.amount for e in labor_entries),
        total_parts_amount=sum(e.total_sale for e in part_entries),
        **reported
    )


def _at(values: List[str], index: int) -> str:
    return values[index].strip() if index < len(values) else ""


def parse_operations(record: Dict[str, Any], warnings: List[str]) -> List[ParsedOperation]:
    """
    Parse operation lines from the "|" delimited operation columns.

    Empty operation codes are skipped. The export does not say which
    operation a labor or part line belongs to, so every operation receives
    the full set of lines of the record.
    """
    codes = split_by_operations(_field(record, "Operation Codes"))
    descriptions = split_by_operations(_field(record, "Operation Code Descriptions"))
    line_numbers = split_by_operations(_field(record, "Operation Line Number"))
    sale_types = split_by_operations(_field(record, "Operation Sale Types"))
    amounts = {name: split_by_operations(_field(record, column)) for name, column in OPERATION_AMOUNT_COLUMNS.items()}
    texts = {name: split_by_operations(_field(record, column)) for name, column in OPERATION_TEXT_COLUMNS.items()}

    labor_entries = parse_labor_entries(record, warnings)
    part_entries = parse_part_entries(record, warnings)

    operations = []
    for i, raw_code in enumerate(codes):
        code = raw_code.strip()
        if not code:
            continue
        line_number = parse_integer(_at(line_numbers, i))
        operations.append(build_operation(
            code=code,
            description=_at(descriptions, i),
            line_number=line_number or i + 1,
            sale_type=_at(sale_types, i),
            labor_entries=list(labor_entries),
            part_entries=list(part_entries),
            **{name: parse_monetary(_at(values, i)) for name, values in amounts.items()},
            **{name: _at(values, i) for name, values in texts.items()}
        ))

    if len(operations) > 1 and (labor_entries or part_entries):
        warnings.append(
            f"Labor and parts lines are not partitioned by operation; "
            f"all lines attached to each of {len(operations)} operations"
        )

    return operations


# ============== Validation ==============

def validate_parsed_data(data: ParsedROData, warnings: List[str]) -> List[ParserValidationError]:
    """Run every required-field check, never stopping at the first failure"""
    errors = []

    if not data.header.tenant_id:
        errors.append(ParserValidationError(
            type=ParserErrorType.MISSING_TENANT,
            field="tenantId",
            message="Missing tenant ID in header"
        ))

    if not data.header.ro_number:
        errors.append(ParserValidationError(
            type=ParserErrorType.EMPTY_FIELD,
            field="roNumber",
            message="Missing RO Number"
        ))

    if not data.operations:
        errors.append(ParserValidationError(
            type=ParserErrorType.EMPTY_FIELD,
            field="operations",
            message="No operation codes found in record"
        ))
    else:
        if not any(op.labor_entries for op in data.operations):
            warnings.append("No labor entries found in RO")
        if not any(op.part_entries for op in data.operations):
            warnings.append("No parts found in RO")

    return errors


# ============== Entry Points ==============

def parse_ro_record(record: Dict[str, Any]) -> ParserResult:
    """
    Parse a single raw RO record.

    Never raises: a missing tenant ID or an unexpected failure becomes a
    single "general" error, validation problems become field errors.
    """
    warnings: List[str] = []

    try:
        tenant_id = extract_tenant_id(record)
        header = parse_ro_header(record, tenant_id)
        operations = parse_operations(record, warnings)
        data = ParsedROData(header=header, operations=operations)
    except TenantNotFoundError as e:
        return ParserResult(
            success=False,
            errors=[ParserValidationError(
                type=ParserErrorType.MISSING_TENANT,
                field="general",
                message=str(e)
            )],
            warnings=warnings + ["Skipped due to missing tenant ID"]
        )
    except Exception as e:
        logger.exception("Unexpected error while parsing RO record")
        return ParserResult(
            success=False,
            errors=[ParserValidationError(
                type=ParserErrorType.PARSE_ERROR,
                field="general",
                message=f"Unexpected error during parsing: {e}"
            )],
            warnings=warnings
        )

    errors = validate_parsed_data(data, warnings)
    if errors:
        logger.debug(f"RO {header.ro_number or '?'} for tenant {tenant_id} failed validation: "
                     f"{[err.field for err in errors]}")
        return ParserResult(success=False, errors=errors, warnings=warnings)

    return ParserResult(success=True, data=data, errors=[], warnings=warnings)


def parse_ro_batch(records: List[Dict[str, Any]]) -> BatchParserResult:
    """
    Parse multiple RO records independently.

    Failures never stop the batch; inspect successful_records/failed_records.
    """
    results: List[ParserResult] = []
    errors: List[ParserValidationError] = []
    warnings: List[str] = []
    successful = 0
    total_operations = 0
    total_labor_entries = 0
    total_part_entries = 0
    tenants: List[str] = []

    for record in records:
        result = parse_ro_record(record)
        results.append(result)
        errors.extend(result.errors)
        warnings.extend(result.warnings)

        if result.success and result.data:
            successful += 1
            total_operations += len(result.data.operations)
            total_labor_entries += sum(len(op.labor_entries) for op in result.data.operations)
            total_part_entries += sum(len(op.part_entries) for op in result.data.operations)
            if result.data.header.tenant_id not in tenants:
                tenants.append(result.data.header.tenant_id)

    return BatchParserResult(
        total_records=len(records),
        successful_records=successful,
        failed_records=len(records) - successful,
        results=results,
        errors=errors,
        warnings=warnings,
        summary=BatchSummary(
            total_operations=total_operations,
            total_labor_entries=total_labor_entries,
            total_part_entries=total_part_entries,
            tenants=tenants
        )
    )


# ============== Logging ==============

def log_parser_result(result: ParserResult, record_index: Optional[int] = None) -> None:
    """Log the outcome of a single record parse"""
    prefix = f"[Record {record_index}] " if record_index is not None else ""

    if result.success and result.data:
        header = result.data.header
        logger.info(f"{prefix}Parsed RO {header.ro_number} (tenant={header.tenant_id}, "
                    f"operations={len(result.data.operations)})")
    else:
        logger.error(f"{prefix}Failed to parse record: "
                     f"{'; '.join(f'{e.field}: {e.message}' for e in result.errors)}")

    if result.warnings:
        logger.warning(f"{prefix}Warnings: {result.warnings}")


def log_batch_results(batch: BatchParserResult) -> None:
    """Log a batch summary"""
    logger.info(
        f"Batch parsed: total={batch.total_records}, success={batch.successful_records}, "
        f"failed={batch.failed_records}, operations={batch.summary.total_operations}, "
        f"labor_entries={batch.summary.total_labor_entries}, "
        f"part_entries={batch.summary.total_part_entries}, "
        f"tenants={', '.join(batch.summary.tenants) or '-'}"
    )
    for index, result in enumerate(batch.results):
        if not result.success:
            log_parser_result(result, record_index=index)
