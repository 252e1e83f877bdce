#!/usr/bin/env python3
"""
Local Parse Script
Parses a DMS RO export file locally, bypassing the HTTP API.

Usage:
    python run_local_parse.py export.json [output.json]

The export is either a list of raw RO records or {"records": [...]}.
"""

import json
import logging
import os
import sys
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Add app to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app.services.ro_parser import parse_ro_batch, log_batch_results

logger = logging.getLogger(__name__)


def load_records(path: str) -> list:
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get("records") or []
    if not isinstance(payload, list):
        raise ValueError(f"{path} does not contain a list of records")
    return payload


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    if not argv:
        print(__doc__)
        return 2

    input_path = argv[0]
    output_path = argv[1] if len(argv) > 1 else None

    print("=" * 60)
    print("LOCAL PARSE SCRIPT")
    print("=" * 60)
    print(f"\nInput: {input_path}")

    try:
        records = load_records(input_path)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read {input_path}: {e}")
        return 1

    batch = parse_ro_batch(records)
    log_batch_results(batch)

    print(f"\nRecords: {batch.total_records}")
    print(f"Successful: {batch.successful_records}")
    print(f"Failed: {batch.failed_records}")

    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(batch.model_dump(by_alias=True, mode="json"), f, indent=2)
        print(f"Batch result written to {output_path}")

    print("\n" + "=" * 60)
    print("PARSE COMPLETE!")
    print("=" * 60)
    return 0 if batch.failed_records == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
