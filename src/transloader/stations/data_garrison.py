"""
Data Garrison stations publishing a live export file per station.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .. import download
from ..exceptions import TimestampError
from ..models import ObservationRecord, StationMetadata
from ..parsers import data_garrison
from ..timeutil import Interval, parse_offset
from .common import StationContext, build_datastream, complete_lines, download_rows

logger = logging.getLogger(__name__)

DATA_URL = "https://datagarrison.com/users/{user_id}/{station_id}/temp/{station_id}_live.txt"

# Preamble keys that may carry station details
NAME_KEYS = ("Station", "Name")
LATITUDE_KEYS = ("Latitude", "Lat")
LONGITUDE_KEYS = ("Longitude", "Lon", "Long")
OFFSET_KEYS = ("UTC Offset", "Time Zone")


def _first(preamble: dict, keys: tuple) -> Optional[str]:
    for key in keys:
        if preamble.get(key):
            return preamble[key]
    return None


def _float_or_none(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _offset_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        parse_offset(value)
    except TimestampError:
        logger.warning(f"Ignoring unrecognized time zone '{value}' in export preamble")
        return None
    return value


class DataGarrisonStation:
    """
    A station in a Data Garrison user account.

    Args:
        user_id: Data Garrison user (account) identifier
        station_id: Station identifier within the account
        context: Cache and transport collaborators
        metadata: Previously cached metadata, if any
    """

    def __init__(
        self,
        user_id: str,
        station_id: str,
        context: StationContext,
        metadata: Optional[StationMetadata] = None,
    ):
        self.user_id = user_id
        self.id = station_id
        self.context = context
        self.metadata = metadata or StationMetadata(id=station_id)

    @property
    def data_url(self) -> str:
        return DATA_URL.format(user_id=self.user_id, station_id=self.id)

    def download_metadata(self) -> StationMetadata:
        """Build metadata from the export preamble and column header."""
        result = download.fetch(self.context.http, self.data_url, None)
        if isinstance(result, download.Failed):
            result.raise_error()
        text, _ = complete_lines(result.body)
        header = data_garrison.parse_header(text)
        preamble = header.preamble

        metadata = StationMetadata(
            id=self.id,
            name=_first(preamble, NAME_KEYS),
            latitude=_float_or_none(_first(preamble, LATITUDE_KEYS)),
            longitude=_float_or_none(_first(preamble, LONGITUDE_KEYS)),
            timezone_offset=_offset_or_none(_first(preamble, OFFSET_KEYS)),
            properties={
                "user_id": self.user_id,
                "data_url": self.data_url,
                "preamble": preamble,
            },
        )
        metadata.datastreams = [
            build_datastream(self.context.ontology, name, header.units_for(name))
            for name in header.property_fields
        ]

        self.metadata = self.context.refresh(metadata, self.metadata)
        logger.info(
            f"Downloaded metadata for station {self.id}: "
            f"{len(self.metadata.datastreams)} datastreams"
        )
        return self.metadata

    def save_metadata(self) -> Path:
        return self.context.save_metadata(self.metadata)

    def upload_metadata(
        self,
        destination: str,
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> StationMetadata:
        return self.context.upload_metadata(self.metadata, destination, allowed, blocked)

    def download_observations(self) -> List[ObservationRecord]:
        """Download new rows of the live export and cache them."""
        self.context.require_time_zone(self.metadata)

        records, state = download_rows(
            self.context,
            self.data_url,
            data_garrison.parse_file,
            data_garrison.parse_rows,
            self.metadata.timezone_offset,
        )
        self.context.observation_store.append(records)
        if state is not None:
            self.context.download_states.put(state)
        return records

    def upload_observations(
        self,
        destination: str,
        interval: Union[str, Interval],
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> int:
        return self.context.upload_observations(
            self.metadata, destination, interval, allowed, blocked
        )
