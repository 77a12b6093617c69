"""
Create-or-reuse of SensorThings API entities and observation upload.

Every entity link returned by the server is written into the station
metadata and saved to the metadata cache as soon as it is created. A run
that fails part way therefore resumes where it stopped, and a run against
fully linked metadata issues no POST at all.
"""

import logging
import re
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from .exceptions import (
    EntityCreationError,
    HTTPStatusError,
    MetadataError,
    MissingDatastreamError,
    TransloaderConnectionError,
)
from .http import HTTPClient
from .models import DatastreamDef, ObservationRecord, PropertyFilter, StationMetadata
from .ontology import OM_OBSERVATION, Ontology
from .timeutil import Interval, to_iso8601

logger = logging.getLogger(__name__)

ENTITY_ID_PATTERN = re.compile(r"\(([^()]+)\)/?$")


def entity_id(link: str) -> Any:
    """
    Extract the ``@iot.id`` from a navigation link.

    ``http://host/v1.0/Sensors(7)`` gives ``7``; quoted string ids such as
    ``Sensors('abc')`` give ``'abc'`` without quotes.
    """
    match = ENTITY_ID_PATTERN.search(link)
    if not match:
        raise ValueError(f"Not a SensorThings entity link: {link}")
    raw = match.group(1)
    if raw.startswith("'") and raw.endswith("'"):
        return raw[1:-1]
    return int(raw) if raw.isdigit() else raw


def linked_id(link: str, entity_type: str) -> Any:
    """Like ``entity_id``, for links read back from cached metadata."""
    try:
        return entity_id(link)
    except ValueError as e:
        raise MetadataError(f"Cached {entity_type} link is malformed: {link!r}") from e


def join_url(base: str, path: str) -> str:
    return base.rstrip("/") + "/" + path.lstrip("/")


class SensorThingsClient:
    """POSTs entities to a SensorThings API and returns their links."""

    def __init__(self, http: HTTPClient, base_url: str):
        self.http = http
        self.base_url = base_url

    def create(
        self,
        entity_type: str,
        collection_url: str,
        payload: Dict[str, Any],
        require_link: bool = True,
    ) -> Optional[str]:
        """POST ``payload`` to ``collection_url`` and return the new entity link."""
        try:
            response = self.http.post(collection_url, json=payload)
        except HTTPStatusError as e:
            raise EntityCreationError(entity_type, collection_url, e.status_code) from e
        except TransloaderConnectionError as e:
            raise EntityCreationError(entity_type, collection_url) from e

        link = self._link_from(response)
        if not link and require_link:
            raise EntityCreationError(entity_type, collection_url, response.status_code)
        logger.debug(f"Created {entity_type}: {link}")
        return link

    @staticmethod
    def _link_from(response: httpx.Response) -> Optional[str]:
        location = response.headers.get("Location")
        if location:
            return location
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("@iot.selfLink")
        return None


class EntitySynchronizer:
    """
    Ensure a station's Thing, Location, Sensors, ObservedProperties and
    Datastreams exist on a SensorThings server.

    Args:
        http: Transport used for POSTs
        ontology: Lookup for labels, units and observation types
        save: Called with the metadata after every entity is created
    """

    def __init__(
        self,
        http: HTTPClient,
        ontology: Ontology,
        save: Callable[[StationMetadata], Any],
    ):
        self.http = http
        self.ontology = ontology
        self.save = save

    def synchronize(
        self,
        metadata: StationMetadata,
        base_url: str,
        property_filter: Optional[PropertyFilter] = None,
    ) -> StationMetadata:
        """Create missing entities and record their links in ``metadata``."""
        property_filter = property_filter or PropertyFilter()
        client = SensorThingsClient(self.http, base_url)

        if metadata.is_empty:
            raise MetadataError(
                f"Station {metadata.id} has no datastreams; download metadata first"
            )
        if metadata.remote_location_link is None and (
            metadata.latitude is None or metadata.longitude is None
        ):
            raise MetadataError(
                f"Station {metadata.id} has no coordinates; set latitude and "
                "longitude in the cached metadata before uploading"
            )

        self._ensure_thing(client, metadata)
        self._ensure_location(client, metadata)

        for datastream in metadata.datastreams:
            if not property_filter.accepts(datastream.source_property_id):
                logger.debug(f"Skipping filtered property {datastream.source_property_id}")
                continue
            self._ensure_sensor(client, metadata, datastream)
            self._ensure_observed_property(client, metadata, datastream)
            self._ensure_datastream(client, metadata, datastream)

        logger.info(f"Synchronized station {metadata.id} entities with {base_url}")
        return metadata

    def _ensure_thing(self, client: SensorThingsClient, metadata: StationMetadata) -> None:
        if metadata.remote_thing_link:
            return
        name = metadata.name or metadata.id
        payload = {
            "name": name,
            "description": f"Weather station {name}",
            "properties": {"station_id": metadata.id, **metadata.properties},
        }
        metadata.remote_thing_link = client.create(
            "Thing", join_url(client.base_url, "Things"), payload
        )
        self.save(metadata)

    def _ensure_location(
        self, client: SensorThingsClient, metadata: StationMetadata
    ) -> None:
        if metadata.remote_location_link:
            return
        coordinates = [metadata.longitude, metadata.latitude]
        if metadata.elevation is not None:
            coordinates.append(metadata.elevation)
        name = metadata.name or metadata.id
        payload = {
            "name": name,
            "description": f"Location of weather station {name}",
            "encodingType": "application/vnd.geo+json",
            "location": {"type": "Point", "coordinates": coordinates},
        }
        metadata.remote_location_link = client.create(
            "Location", join_url(metadata.remote_thing_link, "Locations"), payload
        )
        self.save(metadata)

    def _ensure_sensor(
        self,
        client: SensorThingsClient,
        metadata: StationMetadata,
        datastream: DatastreamDef,
    ) -> None:
        if datastream.remote_sensor_link:
            return
        label = self.ontology.resolve(datastream.source_property_id).label
        payload = {
            "name": f"Station {metadata.id} {label} Sensor",
            "description": f"{label} sensor at station {metadata.name or metadata.id}",
            "encodingType": "text/plain",
            "metadata": label,
        }
        datastream.remote_sensor_link = client.create(
            "Sensor", join_url(client.base_url, "Sensors"), payload
        )
        self.save(metadata)

    def _ensure_observed_property(
        self,
        client: SensorThingsClient,
        metadata: StationMetadata,
        datastream: DatastreamDef,
    ) -> None:
        if datastream.remote_observed_property_link:
            return
        entry = self.ontology.resolve(datastream.source_property_id)
        payload = {
            "name": entry.label,
            "definition": entry.definition or datastream.source_property_id,
            "description": entry.label,
        }
        datastream.remote_observed_property_link = client.create(
            "ObservedProperty", join_url(client.base_url, "ObservedProperties"), payload
        )
        self.save(metadata)

    def _ensure_datastream(
        self,
        client: SensorThingsClient,
        metadata: StationMetadata,
        datastream: DatastreamDef,
    ) -> None:
        if datastream.remote_datastream_link:
            return
        entry = self.ontology.resolve(datastream.source_property_id)
        observation_type = entry.observation_type or OM_OBSERVATION

        # Record what the Datastream is created with; uploads coerce by it
        datastream.canonical_label = entry.label
        datastream.unit_of_measure_code = entry.unit_code
        datastream.observation_type_uri = observation_type

        name = metadata.name or metadata.id
        payload = {
            "name": f"{name} {datastream.source_property_id}",
            "description": f"{entry.label} ({datastream.source_property_id}) at {name}",
            "unitOfMeasurement": {
                "name": entry.unit_name or datastream.units or "",
                "symbol": entry.unit_symbol or datastream.units or "",
                "definition": entry.unit_code or "",
            },
            "observationType": observation_type,
            "Sensor": {"@iot.id": linked_id(datastream.remote_sensor_link, "Sensor")},
            "ObservedProperty": {
                "@iot.id": linked_id(
                    datastream.remote_observed_property_link, "ObservedProperty"
                )
            },
        }
        datastream.remote_datastream_link = client.create(
            "Datastream", join_url(metadata.remote_thing_link, "Datastreams"), payload
        )
        self.save(metadata)


class ObservationUploader:
    """POSTs cached observations to their station's Datastreams."""

    def __init__(self, http: HTTPClient, ontology: Ontology):
        self.http = http
        self.ontology = ontology

    def upload(
        self,
        metadata: StationMetadata,
        observations: Iterable[ObservationRecord],
        interval: Interval,
        property_filter: Optional[PropertyFilter] = None,
    ) -> int:
        """
        Upload every observation inside ``interval`` that passes the filter.

        Rows whose datastream has no remote link are skipped; once the other
        rows are uploaded a :class:`MissingDatastreamError` naming them is
        raised. No deduplication against earlier uploads is done.

        Returns:
            Number of observations posted
        """
        property_filter = property_filter or PropertyFilter()
        client = SensorThingsClient(self.http, "")
        missing = set()
        count = 0

        for record in observations:
            if record.timestamp not in interval:
                continue
            if not property_filter.accepts(record.source_property_id):
                continue

            datastream = metadata.datastream(record.source_property_id)
            if datastream is None or not datastream.remote_datastream_link:
                logger.error(
                    f"No Datastream link for {record.source_property_id}; "
                    f"skipping observation at {to_iso8601(record.timestamp)}"
                )
                missing.add(record.source_property_id)
                continue

            observation_type = (
                datastream.observation_type_uri
                or self.ontology.observation_type(record.source_property_id)
            )
            try:
                result = self.ontology.coerce(record.value, observation_type)
            except (TypeError, ValueError):
                logger.warning(
                    f"Skipping {record.source_property_id} at "
                    f"{to_iso8601(record.timestamp)}: cannot convert {record.value!r}"
                )
                continue

            client.create(
                "Observation",
                join_url(datastream.remote_datastream_link, "Observations"),
                {"phenomenonTime": to_iso8601(record.timestamp), "result": result},
                require_link=False,
            )
            count += 1

        logger.info(f"Uploaded {count} observations for station {metadata.id} in {interval}")
        if missing:
            raise MissingDatastreamError(missing, uploaded=count)
        return count
