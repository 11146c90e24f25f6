"""
Reads the tabular work-item input (CSV with a header row).

Headers are matched case-insensitively after trimming and stripping a UTF-8
BOM. ``Company`` and ``Country`` are required, ``City`` (or ``City/Town``) is
optional. Rows without company or country are dropped.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import structlog

from .errors import IngestError
from .protocols import WorkItem

logger = structlog.get_logger(__name__)

COMPANY_HEADERS = ("company",)
COUNTRY_HEADERS = ("country",)
CITY_HEADERS = ("city", "city/town")


def normalize_header(header: str) -> str:
    return header.replace("\ufeff", "").strip().lower()


def _find_header(fieldnames: Sequence[str], accepted: Sequence[str]) -> Optional[str]:
    for name in fieldnames:
        if normalize_header(name) in accepted:
            return name
    return None


def _cell(row: Dict[str, Optional[str]], key: Optional[str]) -> str:
    if key is None:
        return ""
    return (row.get(key) or "").strip()


def parse_work_items(text: str) -> List[WorkItem]:
    """Parse CSV text into WorkItems with ids 0..n-1 in input order."""
    reader = csv.DictReader(io.StringIO(text))
    fieldnames = reader.fieldnames or []

    company_key = _find_header(fieldnames, COMPANY_HEADERS)
    if company_key is None:
        raise IngestError('CSV must include a "Company" column.')
    country_key = _find_header(fieldnames, COUNTRY_HEADERS)
    if country_key is None:
        raise IngestError('CSV must include a "Country" column.')
    city_key = _find_header(fieldnames, CITY_HEADERS)

    items: List[WorkItem] = []
    skipped = 0
    for row in reader:
        company = _cell(row, company_key)
        country = _cell(row, country_key)
        if not company or not country:
            skipped += 1
            continue
        city = _cell(row, city_key)
        items.append(WorkItem(id=len(items), company=company, country=country, city=city or None))

    if not items:
        raise IngestError("No valid rows found. Ensure at least Company and Country have values.")

    logger.info("Work items parsed", rows=len(items), skipped=skipped, city_column=city_key)
    return items


def load_work_items(path: Path) -> List[WorkItem]:
    """Read a CSV file into WorkItems."""
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise IngestError(f"CSV parsing error: {path} is not UTF-8 text") from e
    except OSError as e:
        raise IngestError(f"Cannot read {path}: {e}") from e
    return parse_work_items(text)
