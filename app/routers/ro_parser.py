"""
RO Parser Endpoints

Parse DMS repair-order export rows (single record or batch).
"""

import logging
import os
from typing import Any, Dict, List, Union

from fastapi import APIRouter, Body, HTTPException

from app.services.ro_parser import (
    parse_ro_record,
    parse_ro_batch,
    log_parser_result,
    log_batch_results
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Configuration from environment
RO_PARSER_MAX_BATCH = int(os.getenv("RO_PARSER_MAX_BATCH", "5000"))


@router.post("/")
def parse_records(body: Union[Dict[str, Any], List[Any]] = Body(...)):
    """
    Parse RO records

    - **records**: List of raw RO records (batch mode)
    - **record**: A single raw RO record; a bare record object also works
    """
    if isinstance(body, list) or isinstance(body.get("records"), list):
        records = body if isinstance(body, list) else body["records"]

        if not records:
            raise HTTPException(status_code=400, detail="No records provided")
        if len(records) > RO_PARSER_MAX_BATCH:
            raise HTTPException(
                status_code=413,
                detail=f"Batch of {len(records)} records exceeds limit of {RO_PARSER_MAX_BATCH}"
            )

        logger.info(f"Processing batch of {len(records)} RO records")
        batch = parse_ro_batch(records)
        log_batch_results(batch)

        return {
            "success": True,
            "batchResult": batch.model_dump(by_alias=True, mode="json")
        }

    record = body.get("record", body)
    if not isinstance(record, dict) or not record:
        raise HTTPException(status_code=400, detail="Invalid record format")

    result = parse_ro_record(record)
    log_parser_result(result)

    return result.model_dump(by_alias=True, mode="json")


@router.get("/")
def get_parser_info():
    """Describe the RO parser API"""
    return {
        "name": "RO Parser API",
        "version": "1.0.0",
        "description": "Multi-tenant DMS Repair Order parser with delimiter handling",
        "endpoints": {
            "POST": {
                "path": "/api/ro-parser/",
                "body": {
                    "single": {"record": "RawRORecord object"},
                    "batch": {"records": "Array of RawRORecord objects"}
                }
            }
        },
        "max_batch_size": RO_PARSER_MAX_BATCH,
        "features": [
            "Multi-tenant aware parsing",
            "Operation code delimiter handling (|)",
            "Labor and parts lines with derived totals",
            "Field-level validation errors",
            "Batch processing support"
        ]
    }
