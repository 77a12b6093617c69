"""
Parsers for Environment Canada SWOB-ML documents and the station list.

A SWOB-ML document is an O&M 1.0 observation collection holding the
station identification and the latest reading of every element.
"""

import io
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from ..exceptions import ParseError, TimestampError
from ..models import ObservationRecord
from ..timeutil import parse_iso8601

NAMESPACES = {
    "om": "http://www.opengis.net/om/1.0",
    "gml": "http://www.opengis.net/gml",
    "dset": "http://dms.ec.gc.ca/schema/point-observation/2.0",
    "xlink": "http://www.w3.org/1999/xlink",
}

MISSING_VALUES = {"", "MSNG"}


@dataclass
class SwobElement:
    name: str
    value: str
    uom: Optional[str] = None


@dataclass
class SwobDocument:
    identification: Dict[str, str]
    observed_at: datetime
    elements: List[SwobElement] = field(default_factory=list)

    @property
    def latitude(self) -> Optional[float]:
        value = self.identification.get("lat")
        return float(value) if value else None

    @property
    def longitude(self) -> Optional[float]:
        value = self.identification.get("long")
        return float(value) if value else None

    @property
    def elevation(self) -> Optional[float]:
        value = self.identification.get("stn_elev")
        return float(value) if value else None


@dataclass
class StationListEntry:
    id: str
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    elevation: Optional[float] = None
    province: Optional[str] = None
    wmo_id: Optional[str] = None


def parse_document(content: bytes) -> SwobDocument:
    """Parse a SWOB-ML XML document."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(f"Invalid SWOB-ML document: {e}") from e

    identification = {
        el.get("name"): el.get("value", "")
        for el in root.findall(
            ".//om:metadata//dset:identification-elements/dset:element", NAMESPACES
        )
    }

    time_position = root.find(
        ".//om:samplingTime/gml:TimeInstant/gml:timePosition", NAMESPACES
    )
    if time_position is not None and time_position.text:
        observed_text = time_position.text
    else:
        observed_text = identification.get("date_tm", "")
    if not observed_text:
        raise ParseError("SWOB-ML document has no observation time")

    try:
        observed_at = parse_iso8601(observed_text)
    except TimestampError as e:
        raise ParseError(f"Invalid SWOB-ML observation time: {e}") from e

    elements = [
        SwobElement(el.get("name"), el.get("value", ""), el.get("uom"))
        for el in root.findall(".//om:result/dset:elements/dset:element", NAMESPACES)
    ]
    return SwobDocument(identification, observed_at, elements)


def observations(document: SwobDocument) -> List[ObservationRecord]:
    """The reading in ``document`` as records; missing values are dropped."""
    return [
        ObservationRecord(document.observed_at, element.name, element.value)
        for element in document.elements
        if element.value.strip().upper() not in MISSING_VALUES
    ]


def _optional_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_station_list(text: str) -> List[StationListEntry]:
    """Parse the SWOB-ML station list CSV."""
    try:
        frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ParseError(f"Invalid station list: {e}") from e

    if "IATA_ID" not in frame.columns:
        raise ParseError("Station list has no IATA_ID column")

    stations = []
    for row in frame.to_dict("records"):
        if not row["IATA_ID"].strip():
            continue
        stations.append(
            StationListEntry(
                id=row["IATA_ID"].strip(),
                name=row.get("Name", "").strip(),
                latitude=_optional_float(row.get("Latitude")),
                longitude=_optional_float(row.get("Longitude")),
                elevation=_optional_float(row.get("Elevation(m)")),
                province=row.get("Province/Territory") or None,
                wmo_id=row.get("WMO_ID") or None,
            )
        )
    return stations
