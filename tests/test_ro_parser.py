from datetime import datetime

import pytest
from pydantic import ValidationError

from app.models.enums import ParserErrorType
from app.services.ro_parser import (
    extract_tenant_id,
    parse_integer,
    parse_monetary,
    parse_numeric,
    parse_ro_batch,
    parse_ro_record,
    split_by_operations,
    TenantNotFoundError,
)


def test_parse_monetary():
    assert parse_monetary("1,234.50") == 1234.50
    assert parse_monetary("") == 0
    assert parse_monetary("abc") == 0
    assert parse_monetary(None) == 0
    assert parse_monetary(" 6,929.96 ") == 6929.96


def test_parse_numeric_and_integer():
    assert parse_numeric("1.5") == 1.5
    assert parse_numeric("1.5h") == 1.5
    assert parse_numeric("n/a") == 0
    assert parse_integer("45210") == 45210
    assert parse_integer("12abc") == 12
    assert parse_integer("") == 0
    assert parse_integer("x") == 0


def test_split_by_operations():
    assert split_by_operations("") == []
    assert split_by_operations("   ") == []
    assert split_by_operations("A|B||C") == ["A", "B", "", "C"]


def test_extract_tenant_id_prefers_dv_dealer_id():
    assert extract_tenant_id({"DV Dealer ID": " D1 ", "Vendor Dealer ID": "V1"}) == "D1"
    assert extract_tenant_id({"DV Dealer ID": "", "Vendor Dealer ID": " V1 "}) == "V1"
    with pytest.raises(TenantNotFoundError):
        extract_tenant_id({"DV Dealer ID": " ", "Vendor Dealer ID": ""})


def test_parse_well_formed_record(raw_record):
    result = parse_ro_record(raw_record)

    assert result.success is True
    assert result.errors == []
    header = result.data.header
    assert header.tenant_id == "D100"
    assert header.ro_number == "RO1001"
    assert header.total_amount == 1234.50
    assert header.labor_amount == 180.0
    assert header.parts_amount == 19.0
    assert header.tax_amount == 12.35
    assert header.created_at == "2024-07-02T00:00:00"
    assert header.vehicle_info.mileage == 45210
    assert header.vehicle_info.vin == "1HGCM82633A004352"
    assert header.customer_info.name == "Sam Lee"
    assert header.customer_info.phone == "555-0100"
    assert header.customer_info.address == "1 Main St, Springfield, IL 62701"

    [operation] = result.data.operations
    assert operation.operation_code == "MA10"
    assert operation.operation_description == "Oil change"
    assert operation.line_number == 1
    assert operation.sale_type == "C"

    [labor] = operation.labor_entries
    assert labor.technician_id == "T1"
    assert labor.technician_name == "Alice"
    assert labor.amount == 1.5 * 120.0
    assert operation.total_labor_hours == 1.5
    assert operation.total_labor_amount == 180.0

    [part] = operation.part_entries
    assert part.total_cost == 10.0
    assert part.total_sale == 19.0
    assert operation.total_parts_amount == 19.0


def test_vendor_dealer_id_used_when_dv_missing(raw_record):
    raw_record["DV Dealer ID"] = ""
    result = parse_ro_record(raw_record)
    assert result.success is True
    assert result.data.header.tenant_id == "V-77"


def test_missing_tenant_is_single_general_error(raw_record):
    raw_record["DV Dealer ID"] = ""
    raw_record["Vendor Dealer ID"] = ""
    raw_record["RO Number"] = ""

    result = parse_ro_record(raw_record)

    assert result.success is False
    assert result.data is None
    assert len(result.errors) == 1
    assert result.errors[0].field == "general"
    assert result.errors[0].type == ParserErrorType.MISSING_TENANT
    assert "Skipped due to missing tenant ID" in result.warnings


def test_validation_collects_every_error(raw_record):
    raw_record["RO Number"] = ""
    raw_record["Operation Codes"] = ""

    result = parse_ro_record(raw_record)

    assert result.success is False
    assert result.data is None
    assert [e.field for e in result.errors] == ["roNumber", "operations"]


def test_zero_hours_and_zero_quantity_lines_are_dropped(raw_record):
    raw_record.update({
        "Tech Number": "T1|T2",
        "Tech Name": "Alice|Bob",
        "Labor Tech Hours": "0|2",
        "Labor Tech Rate": "100|110",
        "Part Number": "P1|P2",
        "Part Description": "Filter|Gasket",
        "Part Quantity": "0|1",
        "Parts Unit Cost": "5|2",
        "Parts Unit Sale": "9|4",
    })

    [operation] = parse_ro_record(raw_record).data.operations

    assert [e.technician_id for e in operation.labor_entries] == ["T2"]
    assert [e.part_number for e in operation.part_entries] == ["P2"]
    assert operation.total_labor_amount == 220.0
    assert operation.total_parts_amount == 4.0


def test_lines_attached_to_every_operation(raw_record):
    raw_record.update({
        "Operation Codes": "MA10||FS02",
        "Operation Code Descriptions": "Oil change||Fuel service",
        "Tech Number": "T1|T2",
        "Tech Name": "Alice|Bob",
        "Labor Tech Hours": "1.5|0.5",
        "Labor Tech Rate": "120|100",
    })

    result = parse_ro_record(raw_record)

    assert result.success is True
    first, second = result.data.operations
    assert (first.operation_code, second.operation_code) == ("MA10", "FS02")
    assert (first.line_number, second.line_number) == (1, 3)
    assert second.operation_description == "Fuel service"
    for operation in (first, second):
        assert len(operation.labor_entries) == 2
        assert operation.total_labor_hours == 2.0
        assert operation.total_labor_amount == sum(e.hours * e.rate for e in operation.labor_entries)
    assert any("not partitioned by operation" in w for w in result.warnings)


def test_mismatched_line_columns_warn_instead_of_truncating(raw_record):
    raw_record.update({
        "Tech Number": "T1|T2",
        "Tech Name": "Alice|Bob",
        "Labor Tech Hours": "1.0|2.0",
        "Labor Tech Rate": "100",
    })

    result = parse_ro_record(raw_record)

    [operation] = result.data.operations
    assert [(e.technician_id, e.rate, e.amount) for e in operation.labor_entries] == [
        ("T1", 100.0, 100.0),
        ("T2", 0.0, 0.0),
    ]
    assert any("mismatched value counts" in w for w in result.warnings)


def test_malformed_numbers_coerce_to_zero(raw_record):
    raw_record["Total Sale"] = "abc"
    raw_record["RO Mileage"] = ""
    raw_record["Parts Unit Sale"] = "??"

    result = parse_ro_record(raw_record)

    assert result.success is True
    assert result.data.header.total_amount == 0
    assert result.data.header.vehicle_info.mileage == 0
    assert result.data.operations[0].total_parts_amount == 0


def test_created_at_defaults_to_now(raw_record):
    raw_record.pop("Open Date")
    created = datetime.fromisoformat(parse_ro_record(raw_record).data.header.created_at)
    assert created.tzinfo is not None


def test_warnings_for_missing_lines(raw_record):
    for column in ("Tech Number", "Tech Name", "Labor Tech Hours", "Labor Tech Rate", "Part Number"):
        raw_record[column] = ""

    result = parse_ro_record(raw_record)

    assert result.success is True
    assert "No labor entries found in RO" in result.warnings
    assert "No parts found in RO" in result.warnings


def test_unexpected_input_becomes_general_error():
    result = parse_ro_record(None)
    assert result.success is False
    assert [e.field for e in result.errors] == ["general"]
    assert result.errors[0].type == ParserErrorType.PARSE_ERROR


def test_parsed_data_is_frozen(raw_record):
    data = parse_ro_record(raw_record).data
    with pytest.raises(ValidationError):
        data.header.ro_number = "other"


def test_result_serializes_with_camel_case(raw_record):
    dumped = parse_ro_record(raw_record).model_dump(by_alias=True)
    operation = dumped["data"]["operations"][0]
    assert dumped["data"]["header"]["tenantId"] == "D100"
    assert operation["totalLaborAmount"] == 180.0
    assert operation["partEntries"][0]["unitSale"] == 9.5


def test_batch_counts_and_summary(raw_record):
    other_tenant = dict(raw_record, **{"DV Dealer ID": "D200", "RO Number": "RO2"})
    no_tenant = dict(raw_record, **{"DV Dealer ID": "", "Vendor Dealer ID": ""})
    no_ro = dict(raw_record, **{"RO Number": ""})

    batch = parse_ro_batch([raw_record, no_tenant, other_tenant, no_ro])

    assert batch.total_records == len(batch.results) == 4
    assert batch.successful_records == 2
    assert batch.failed_records == 2
    assert [r.success for r in batch.results] == [True, False, True, False]
    assert [e.field for e in batch.errors] == ["general", "roNumber"]
    assert batch.summary.tenants == ["D100", "D200"]
    assert batch.summary.total_operations == 2
    assert batch.summary.total_labor_entries == 2
    assert batch.summary.total_part_entries == 2
    assert batch.warnings == [w for r in batch.results for w in r.warnings]
    assert "Skipped due to missing tenant ID" in batch.warnings


def test_batch_with_no_successes_does_not_raise():
    batch = parse_ro_batch([{}, {"RO Number": "1"}])
    assert batch.total_records == 2
    assert batch.successful_records == 0
    assert batch.failed_records == 2


def test_empty_batch():
    batch = parse_ro_batch([])
    assert batch.total_records == batch.successful_records == batch.failed_records == 0
    assert batch.results == []


def test_header_carries_payer_sublet_and_appointment_fields(raw_record):
    raw_record.update({
        "Customer Total Cost": "60.00",
        "Customer Total Sale": "1,100.00",
        "Warranty Total Cost": "20.00",
        "Warranty Total Sale": "134.50",
        "Internal Total Cost": "",
        "Internal Total Sale": "n/a",
        "Total Labor Cost": "70.00",
        "Total Parts Cost": "10.00",
        "Total Sublet Cost": "40.00",
        "Total Sublet Sale": "55.00",
        "Appointment Date": "07/01/2024",
        "Appointment Flag": "Y",
        "Appointment Number": "A-31",
    })

    header = parse_ro_record(raw_record).data.header

    assert (header.customer_total_cost, header.customer_total_sale) == (60.0, 1100.0)
    assert (header.warranty_total_cost, header.warranty_total_sale) == (20.0, 134.5)
    assert (header.internal_total_cost, header.internal_total_sale) == (0, 0)
    assert header.total_labor_cost == 70.0
    assert header.total_parts_cost == 10.0
    assert (header.total_sublet_cost, header.total_sublet_sale) == (40.0, 55.0)
    assert header.appointment_date == "07/01/2024"
    assert header.appointment_flag == "Y"
    assert header.appointment_number == "A-31"


def test_operation_reported_amounts_kept_apart_from_derived_totals(raw_record):
    raw_record.update({
        "Operation Codes": "MA10|FS02",
        "Operation Code Descriptions": "Oil change|Fuel service",
        "Operation Line Cost": "25.00|40.00",
        "Operation Line Sale": "95.00|150.00",
        "Labor Cost": "15.00|30.00",
        "Labor Sale": "80.00|120.00",
        "Labor Bill Hours": "0.8|1.0",
        "Labor Bill Rate": "100.00|120.00",
        "Sublet Cost": "|12.00",
        "Sublet Sale": "|18.00",
        "Labor Complaint": "Due for service|Rough idle",
        "Labor Cause": "Mileage|Dirty injectors",
        "Labor Correction": "Changed oil|Cleaned fuel system",
    })

    first, second = parse_ro_record(raw_record).data.operations

    assert (first.operation_line_cost, first.operation_line_sale) == (25.0, 95.0)
    assert (first.labor_cost, first.labor_sale) == (15.0, 80.0)
    assert (first.labor_bill_hours, first.labor_bill_rate) == (0.8, 100.0)
    assert (first.sublet_cost, first.sublet_sale) == (0, 0)
    assert (second.sublet_cost, second.sublet_sale) == (12.0, 18.0)
    assert second.labor_complaint == "Rough idle"
    assert second.labor_cause == "Dirty injectors"
    assert second.labor_correction == "Cleaned fuel system"
    # derived from the shared labor/part lines, not from the reported columns
    for operation in (first, second):
        assert operation.total_labor_amount == 180.0
        assert operation.total_parts_amount == 19.0


def test_reported_operation_columns_default_when_absent(raw_record):
    [operation] = parse_ro_record(raw_record).data.operations

    assert operation.operation_line_sale == 0
    assert operation.labor_bill_hours == 0
    assert operation.labor_complaint == ""
