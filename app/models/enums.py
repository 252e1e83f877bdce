"""
DMS Codes and Enums

Standardized constants for DMS export values.
"""

from enum import Enum


class PayerType(str, Enum):
    """Operation sale type / payer bucket"""
    CUSTOMER = "C"
    WARRANTY = "W"
    INTERNAL = "I"

    @classmethod
    def to_label(cls, code: str) -> str:
        labels = {
            "C": "Customer",
            "W": "Warranty",
            "I": "Internal"
        }
        return labels.get((code or "").strip().upper(), f"Unknown ({code})")

    @property
    def column_prefix(self) -> str:
        """Prefix used by DMS financial columns, e.g. 'Customer Labor Sale'"""
        return PayerType.to_label(self.value)


class ParserErrorType(str, Enum):
    """Parser validation error categories"""
    MISSING_TENANT = "missing_tenant"
    EMPTY_FIELD = "empty_field"
    PARSE_ERROR = "parse_error"
