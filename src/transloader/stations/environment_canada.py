"""
Environment Canada stations publishing SWOB-ML on the MSC Datamart.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from ..exceptions import DownloadError, HTTPStatusError, MetadataError
from ..models import ObservationRecord, StationMetadata
from ..parsers import swob
from ..timeutil import Interval
from .common import StationContext, build_datastream

logger = logging.getLogger(__name__)

OBSERVATIONS_URL = (
    "https://dd.weather.gc.ca/observations/swob-ml/latest/{station_id}-AUTO-swob.xml"
)

# SWOB-ML timestamps are UTC
TIMEZONE_OFFSET = "+00:00"


class EnvironmentCanadaStation:
    """
    A station identified by its IATA id, e.g. ``CXCM``.

    Args:
        station_id: IATA station identifier
        context: Cache and transport collaborators
        station_list: Returns the parsed SWOB-ML station list
        metadata: Previously cached metadata, if any
    """

    def __init__(
        self,
        station_id: str,
        context: StationContext,
        station_list: Callable[[], List[swob.StationListEntry]],
        metadata: Optional[StationMetadata] = None,
    ):
        self.id = station_id
        self.context = context
        self.station_list = station_list
        self.metadata = metadata or StationMetadata(id=station_id)

    @property
    def observations_url(self) -> str:
        return OBSERVATIONS_URL.format(station_id=self.id)

    def _find_entry(self) -> swob.StationListEntry:
        for entry in self.station_list():
            if entry.id == self.id:
                return entry
        raise MetadataError(f"Station {self.id} is not in the SWOB-ML station list")

    def _download_document(self) -> swob.SwobDocument:
        url = self.observations_url
        try:
            response = self.context.http.get(url)
        except HTTPStatusError as e:
            raise DownloadError(
                f"Error downloading SWOB-ML file: {e}", url, e.status_code
            ) from e
        return swob.parse_document(response.content)

    def download_metadata(self) -> StationMetadata:
        """Build metadata from the station list and the latest SWOB-ML file."""
        entry = self._find_entry()
        document = self._download_document()

        metadata = StationMetadata(
            id=self.id,
            name=entry.name or document.identification.get("stn_nam"),
            latitude=entry.latitude if entry.latitude is not None else document.latitude,
            longitude=entry.longitude
            if entry.longitude is not None
            else document.longitude,
            elevation=entry.elevation
            if entry.elevation is not None
            else document.elevation,
            timezone_offset=TIMEZONE_OFFSET,
            properties={
                "province": entry.province,
                "wmo_id": entry.wmo_id,
                "swob_url": self.observations_url,
            },
        )
        metadata.datastreams = [
            build_datastream(self.context.ontology, element.name, element.uom)
            for element in document.elements
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
        """Cache the readings in the latest SWOB-ML file."""
        records = swob.observations(self._download_document())
        added = self.context.observation_store.append(records)
        logger.info(f"Cached {added} new observations for station {self.id}")
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
