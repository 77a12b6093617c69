"""
Parser for Campbell Scientific TOA5 data files.

A TOA5 file is CSV with a four line header::

    "TOA5","<station>","<logger model>","<serial>","<os>","<program>","<signature>","<table>"
    "TIMESTAMP","RECORD","BP_Avg",...      field names
    "TS","RN","mbar",...                   units
    "","","Avg",...                        processing

followed by one data row per logger record. Timestamps carry no zone
offset; the station's offset must be supplied.
"""

import csv
import io
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from ..exceptions import ParseError
from ..models import ObservationRecord
from ..timeutil import parse_local_timestamp

HEADER_LINES = 4
TIMESTAMP_FIELD = "TIMESTAMP"
NON_PROPERTY_FIELDS = {TIMESTAMP_FIELD, "RECORD"}
# Compared upper-cased
MISSING_VALUES = {"", "NAN", "INF", "+INF", "-INF"}
TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f")

ENVIRONMENT_KEYS = (
    "file_format",
    "station_name",
    "logger_model",
    "logger_serial",
    "os_version",
    "program",
    "program_signature",
    "table_name",
)


@dataclass
class Toa5Header:
    environment: Dict[str, str]
    fields: List[str]
    units: List[str]
    processing: List[str] = field(default_factory=list)

    @property
    def property_fields(self) -> List[str]:
        return [f for f in self.fields if f not in NON_PROPERTY_FIELDS]

    def units_for(self, name: str) -> Optional[str]:
        index = self.fields.index(name)
        return self.units[index] if index < len(self.units) else None


def split_header(text: str) -> tuple:
    """Split a full file into (header text, data text)."""
    lines = text.splitlines(keepends=True)
    return "".join(lines[:HEADER_LINES]), "".join(lines[HEADER_LINES:])


def parse_header(text: str) -> Toa5Header:
    """Parse the four header lines at the start of a TOA5 file."""
    rows = list(csv.reader(io.StringIO(text)))[:HEADER_LINES]
    if len(rows) < 3 or not rows[0] or rows[0][0] != "TOA5":
        raise ParseError("Not a TOA5 file: missing TOA5 header")

    environment = dict(zip(ENVIRONMENT_KEYS, rows[0]))
    fields = rows[1]
    if TIMESTAMP_FIELD not in fields:
        raise ParseError("TOA5 header has no TIMESTAMP field")

    return Toa5Header(
        environment=environment,
        fields=fields,
        units=rows[2],
        processing=rows[3] if len(rows) > 3 else [],
    )


def _parse_timestamp(value: str, zone_offset: Optional[str]):
    # Sub-second tables write fractional seconds
    fmt = TIMESTAMP_FORMATS[1] if "." in value else TIMESTAMP_FORMATS[0]
    return parse_local_timestamp(value, fmt, zone_offset)


def parse_rows(
    text: str, fields: List[str], zone_offset: Optional[str]
) -> List[ObservationRecord]:
    """
    Parse header-less TOA5 data rows into observation records.

    ``fields`` is the field list captured from the file header. Missing
    values (``NAN`` or empty cells) produce no record.
    """
    if not text.strip():
        return []

    frame = pd.read_csv(
        io.StringIO(text),
        header=None,
        names=fields,
        dtype=str,
        keep_default_na=False,
        index_col=False,
    ).fillna("")

    records = []
    for row in frame.to_dict("records"):
        timestamp = _parse_timestamp(row[TIMESTAMP_FIELD], zone_offset)
        for name in fields:
            if name in NON_PROPERTY_FIELDS:
                continue
            value = str(row.get(name, "")).strip()
            if value.upper() in MISSING_VALUES:
                continue
            records.append(ObservationRecord(timestamp, name, value))
    return records


def parse_file(text: str, zone_offset: Optional[str]) -> tuple:
    """Parse a complete TOA5 file into (header, observation records)."""
    header_text, data_text = split_header(text)
    header = parse_header(header_text)
    return header, parse_rows(data_text, header.fields, zone_offset)
