"""
Read sponsor rows from a CSV export for the bulk-create path.

Headers are matched on their letters only, so "Company Name", "company_name"
and "companyName" all land on ``companyName``. Unrecognised columns are
dropped.
"""

from __future__ import annotations

import csv
import re
from typing import Iterator, TextIO

IMPORT_COLUMNS = (
    "companyName",
    "sector",
    "companyEmail",
    "contactPerson",
    "phoneNumber",
    "location",
    "notes",
    "status",
)

HEADER_ALIASES = {
    "company": "companyName",
    "email": "companyEmail",
    "contact": "contactPerson",
    "poc": "contactPerson",
    "phone": "phoneNumber",
}


def _header_key(header: str) -> str:
    return re.sub(r"[^a-z]", "", (header or "").lower())


COLUMN_LOOKUP = {_header_key(column): column for column in IMPORT_COLUMNS}
COLUMN_LOOKUP.update(HEADER_ALIASES)


def read_sponsor_rows(handle: TextIO) -> Iterator[dict]:
    reader = csv.DictReader(handle)
    columns = {
        header: COLUMN_LOOKUP[_header_key(header)]
        for header in reader.fieldnames or []
        if _header_key(header) in COLUMN_LOOKUP
    }
    for raw in reader:
        row = {}
        for header, key in columns.items():
            value = raw.get(header)
            if value is not None and value.strip() and key not in row:
                row[key] = value.strip()
        yield row
