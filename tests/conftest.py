import pytest


@pytest.fixture
def raw_record():
    """Well-formed single-operation DMS RO row"""
    return {
        "File Type": "Service",
        "DV Dealer ID": " D100 ",
        "Vendor Dealer ID": "V-77",
        "DMS Type": "PBS",
        "RO Number": "RO1001",
        "Open Date": "07/02/2024",
        "Close Date": "07/03/2024",
        "Service Advisor Number": "12",
        "Service Advisor Name": "Dana Reyes",
        "Total Cost": "150.00",
        "Total Sale": "1,234.50",
        "Total Labor Sale": "180.00",
        "Total Parts Sale": "19.00",
        "Total Tax": "12.35",
        "VIN": "1HGCM82633A004352",
        "Year": "2021",
        "Make": "HONDA",
        "Model": "ACCORD",
        "RO Mileage": "45210",
        "Customer Number": "C-9",
        "First Name": "Sam",
        "Last Name": "Lee",
        "Home Phone": "555-0100",
        "Email 1": "sam@example.com",
        "Address Line 1": "1 Main St",
        "City": "Springfield",
        "State": "IL",
        "Zip Code": "62701",
        "Operation Codes": "MA10",
        "Operation Code Descriptions": "Oil change",
        "Operation Sale Types": "C",
        "Tech Number": "T1",
        "Tech Name": "Alice",
        "Labor Tech Hours": "1.5",
        "Labor Tech Rate": "120.00",
        "Part Number": "P1",
        "Part Description": "Oil filter",
        "Part Quantity": "2",
        "Parts Unit Cost": "5.00",
        "Parts Unit Sale": "9.50",
    }


@pytest.fixture
def service_record():
    """Builds a ServiceRecord row; unspecified amounts are empty"""
    def _build(advisor="Dana Reyes", closed="07/02/2024", opened="07/01/2024", **amounts):
        record = {
            "DV Dealer ID": "D100",
            "RO Number": "RO1",
            "Open Date": opened,
            "Closed RO Date": closed,
            "Service Advisor Number": "12",
            "Service Advisor Name": advisor,
            "RO Department": "Service",
        }
        for payer in ("Customer", "Warranty", "Internal"):
            for kind in ("Total", "Labor", "Parts"):
                for side in ("Cost", "Sale"):
                    key = f"{payer}_{kind}_{side}".lower()
                    record[f"{payer} {kind} {side}"] = amounts.get(key, "")
        return record
    return _build
