"""
Parser for Data Garrison station export files.

The export is tab-separated text. A preamble of ``Key: value`` lines
identifies the station, followed by a header row starting with
``Date_Time`` whose columns read ``Name (units)``, then one row per
reading with a local ``MM/DD/YY HH:MM:SS`` timestamp.
"""

import io
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

import pandas as pd

from ..exceptions import ParseError
from ..models import ObservationRecord
from ..timeutil import parse_local_timestamp

TIMESTAMP_FIELD = "Date_Time"
TIMESTAMP_FORMAT = "%m/%d/%y %H:%M:%S"
# Compared upper-cased
MISSING_VALUES = {"", "---", "NAN", "INF", "-INF"}
COLUMN_PATTERN = re.compile(r"^(?P<name>.+?)\s*\((?P<units>[^()]*)\)\s*$")


@dataclass
class DataGarrisonHeader:
    preamble: Dict[str, str]
    fields: List[str]
    units: List[Optional[str]]
    line_count: int

    @property
    def property_fields(self) -> List[str]:
        return [f for f in self.fields if f != TIMESTAMP_FIELD]

    def units_for(self, name: str) -> Optional[str]:
        return self.units[self.fields.index(name)]


def parse_header(text: str) -> DataGarrisonHeader:
    """Parse the preamble and column header of an export file."""
    preamble: Dict[str, str] = {}
    lines = text.splitlines()

    for index, line in enumerate(lines):
        if line.startswith(TIMESTAMP_FIELD):
            fields, units = [], []
            for column in line.rstrip("\r\n").split("\t"):
                match = COLUMN_PATTERN.match(column)
                if match:
                    fields.append(match.group("name").strip())
                    units.append(match.group("units").strip() or None)
                else:
                    fields.append(column.strip())
                    units.append(None)
            return DataGarrisonHeader(preamble, fields, units, index + 1)

        key, sep, value = line.partition(":")
        if sep and key.strip():
            preamble[key.strip()] = value.strip()

    raise ParseError(f"Data Garrison export has no '{TIMESTAMP_FIELD}' header row")


def split_header(text: str) -> tuple:
    """Split a full export into (header, data text)."""
    header = parse_header(text)
    lines = text.splitlines(keepends=True)
    return header, "".join(lines[header.line_count:])


def parse_rows(
    text: str, fields: List[str], zone_offset: Optional[str]
) -> List[ObservationRecord]:
    """Parse header-less export rows into observation records."""
    if not text.strip():
        return []

    frame = pd.read_csv(
        io.StringIO(text),
        sep="\t",
        header=None,
        names=fields,
        dtype=str,
        keep_default_na=False,
        index_col=False,
    ).fillna("")

    records = []
    for row in frame.to_dict("records"):
        timestamp = parse_local_timestamp(
            row[TIMESTAMP_FIELD], TIMESTAMP_FORMAT, zone_offset
        )
        for name in fields:
            if name == TIMESTAMP_FIELD:
                continue
            value = str(row.get(name, "")).strip()
            if value.upper() in MISSING_VALUES:
                continue
            records.append(ObservationRecord(timestamp, name, value))
    return records


def parse_file(text: str, zone_offset: Optional[str]) -> tuple:
    """Parse a complete export into (header, observation records)."""
    header, data_text = split_header(text)
    return header, parse_rows(data_text, header.fields, zone_offset)
