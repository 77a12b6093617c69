"""
Data models for station metadata, download state and observations.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from .exceptions import InvalidFilterError
from .timeutil import parse_iso8601, to_iso8601

LINK_FIELDS = (
    "remote_sensor_link",
    "remote_observed_property_link",
    "remote_datastream_link",
)


@dataclass
class DatastreamDef:
    """One observed property of a station and its SensorThings entity links."""

    source_property_id: str
    canonical_label: str
    unit_of_measure_code: Optional[str] = None
    observation_type_uri: Optional[str] = None
    units: Optional[str] = None  # as reported by the source
    remote_sensor_link: Optional[str] = None
    remote_observed_property_link: Optional[str] = None
    remote_datastream_link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatastreamDef":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class StationMetadata:
    """Parsed station metadata plus any SensorThings links discovered so far."""

    id: str
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[float] = None
    timezone_offset: Optional[str] = None
    remote_thing_link: Optional[str] = None
    remote_location_link: Optional[str] = None
    datastreams: List[DatastreamDef] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True until a metadata download has populated the datastreams."""
        return not self.datastreams

    def datastream(self, source_property_id: str) -> Optional[DatastreamDef]:
        for datastream in self.datastreams:
            if datastream.source_property_id == source_property_id:
                return datastream
        return None

    def carry_forward(self, previous: "StationMetadata") -> None:
        """
        Copy remote links and operator-supplied fields from earlier metadata.

        A freshly downloaded record never drops a link that was already
        recorded, so re-running a download cannot cause duplicate entities.
        Coordinates and time zone offset entered by hand for sources that do
        not report them are kept as well.
        """
        for name in ("name", "latitude", "longitude", "elevation", "timezone_offset"):
            if getattr(self, name) is None:
                setattr(self, name, getattr(previous, name))

        self.remote_thing_link = self.remote_thing_link or previous.remote_thing_link
        self.remote_location_link = (
            self.remote_location_link or previous.remote_location_link
        )
        for old in previous.datastreams:
            new = self.datastream(old.source_property_id)
            if new is None:
                # Property vanished from the source; keep its links around
                self.datastreams.append(old)
                continue
            for name in LINK_FIELDS:
                if getattr(new, name) is None:
                    setattr(new, name, getattr(old, name))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["datastreams"] = [d.to_dict() for d in self.datastreams]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StationMetadata":
        known = {
            k: v
            for k, v in data.items()
            if k in cls.__dataclass_fields__ and k != "datastreams"
        }
        metadata = cls(**known)
        metadata.datastreams = [
            DatastreamDef.from_dict(d) for d in data.get("datastreams", [])
        ]
        return metadata


@dataclass
class DownloadState:
    """How much of a remote data file has been downloaded so far."""

    url: str
    content_length: int
    last_modified: Optional[datetime] = None
    full_file: bool = True
    header: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "content_length": self.content_length,
            "last_modified": to_iso8601(self.last_modified)
            if self.last_modified
            else None,
            "full_file": self.full_file,
            "header": list(self.header),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DownloadState":
        last_modified = data.get("last_modified")
        return cls(
            url=data["url"],
            content_length=int(data["content_length"]),
            last_modified=parse_iso8601(last_modified) if last_modified else None,
            full_file=bool(data.get("full_file", True)),
            header=list(data.get("header", [])),
        )


@dataclass(frozen=True)
class ObservationRecord:
    """A single reading of one property at one UTC instant."""

    timestamp: datetime
    source_property_id: str
    value: Any

    @property
    def key(self) -> tuple:
        return (self.timestamp, self.source_property_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": to_iso8601(self.timestamp),
            "property": self.source_property_id,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObservationRecord":
        return cls(
            timestamp=parse_iso8601(data["timestamp"]),
            source_property_id=data["property"],
            value=data["value"],
        )


@dataclass(frozen=True)
class PropertyFilter:
    """
    Allow/block list over source property ids.

    ``allowed`` restricts to exactly those ids; ``blocked`` excludes them.
    Supplying both is an input error.
    """

    allowed: Optional[frozenset] = None
    blocked: Optional[frozenset] = None

    def __post_init__(self) -> None:
        if self.allowed is not None and self.blocked is not None:
            raise InvalidFilterError(
                "An allow list and a block list cannot be used together"
            )

    @classmethod
    def from_lists(
        cls,
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> "PropertyFilter":
        return cls(
            allowed=frozenset(allowed) if allowed is not None else None,
            blocked=frozenset(blocked) if blocked is not None else None,
        )

    def accepts(self, source_property_id: str) -> bool:
        if self.allowed is not None:
            return source_property_id in self.allowed
        if self.blocked is not None:
            return source_property_id not in self.blocked
        return True

    def select(self, property_ids: Iterable[str]) -> Set[str]:
        return {p for p in property_ids if self.accepts(p)}
