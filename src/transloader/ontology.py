"""
Mapping of source property keys onto standard observed properties, units
and O&M observation types.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

OM_MEASUREMENT = (
    "http://www.opengis.net/def/observationType/OGC-OM/2.0/OM_Measurement"
)
OM_COUNT = (
    "http://www.opengis.net/def/observationType/OGC-OM/2.0/OM_CountObservation"
)
OM_OBSERVATION = (
    "http://www.opengis.net/def/observationType/OGC-OM/2.0/OM_Observation"
)

UO = "http://purl.obolibrary.org/obo/"
QUDT = "http://qudt.org/vocab/unit/"

# Units of measure: name, symbol, definition
UNITS = {
    "percent": ("Percent", "%", UO + "UO_0000187"),
    "celsius": ("Degree Celsius", "°C", UO + "UO_0000027"),
    "volt": ("Volt", "V", UO + "UO_0000218"),
    "metre": ("Metre", "m", UO + "UO_0000008"),
    "centimetre": ("Centimetre", "cm", UO + "UO_0000015"),
    "millimetre": ("Millimetre", "mm", UO + "UO_0000016"),
    "metre_per_second": ("Metre per Second", "m/s", UO + "UO_0000094"),
    "watt_per_square_metre": ("Watt per Square Metre", "W/m²", UO + "UO_0000155"),
    "degree": ("Degree", "°", UO + "UO_0000185"),
    "count": ("Count", "{count}", UO + "UO_0000189"),
    "hectopascal": ("Hectopascal", "hPa", QUDT + "HectoPA"),
    "millibar": ("Millibar", "mbar", QUDT + "MilliBAR"),
    "kilometre_per_hour": ("Kilometre per Hour", "km/h", QUDT + "KiloM-PER-HR"),
    "kilometre": ("Kilometre", "km", QUDT + "KiloM"),
}

CF = "http://vocab.nerc.ac.uk/standard_name/"
LOCAL = "urn:transloader:property:"

# Standard observed properties: label, definition
PROPERTIES = {
    "air_temperature": ("Air Temperature", CF + "air_temperature/"),
    "relative_humidity": ("Relative Humidity", CF + "relative_humidity/"),
    "dew_point": ("Dew Point Temperature", CF + "dew_point_temperature/"),
    "station_pressure": ("Station Pressure", CF + "surface_air_pressure/"),
    "sea_level_pressure": (
        "Mean Sea Level Pressure",
        CF + "air_pressure_at_mean_sea_level/",
    ),
    "wind_speed": ("Wind Speed", CF + "wind_speed/"),
    "wind_gust": ("Wind Gust Speed", CF + "wind_speed_of_gust/"),
    "wind_direction": ("Wind Direction", CF + "wind_from_direction/"),
    "precipitation": ("Precipitation", CF + "precipitation_amount/"),
    "snow_depth": ("Snow Depth", CF + "surface_snow_thickness/"),
    "visibility": ("Visibility", CF + "visibility_in_air/"),
    "solar_radiation": (
        "Solar Radiation",
        CF + "surface_downwelling_shortwave_flux_in_air/",
    ),
    # No CF standard name for the following
    "battery_voltage": ("Battery Voltage", LOCAL + "battery_voltage"),
    "panel_temperature": ("Logger Panel Temperature", LOCAL + "panel_temperature"),
    "data_availability": ("Data Availability", LOCAL + "data_availability"),
    "lightning_strikes": ("Lightning Strike Count", LOCAL + "lightning_strikes"),
}


@dataclass(frozen=True)
class OntologyEntry:
    """Canonical description of one source property."""

    label: str
    definition: Optional[str] = None
    unit_name: Optional[str] = None
    unit_symbol: Optional[str] = None
    unit_code: Optional[str] = None
    observation_type: str = OM_OBSERVATION

    @property
    def is_known(self) -> bool:
        return self.definition is not None


def _entry(
    property_name: str, unit: Optional[str], observation_type: str = OM_MEASUREMENT
) -> OntologyEntry:
    label, definition = PROPERTIES[property_name]
    unit_name, unit_symbol, unit_code = UNITS[unit] if unit else (None, None, None)
    return OntologyEntry(
        label=label,
        definition=definition,
        unit_name=unit_name,
        unit_symbol=unit_symbol,
        unit_code=unit_code,
        observation_type=observation_type,
    )


# Environment Canada SWOB-ML element names
ENVIRONMENT_CANADA = {
    "air_temp": _entry("air_temperature", "celsius"),
    "avg_air_temp_pst1hr": _entry("air_temperature", "celsius"),
    "max_air_temp_pst1hr": _entry("air_temperature", "celsius"),
    "min_air_temp_pst1hr": _entry("air_temperature", "celsius"),
    "rel_hum": _entry("relative_humidity", "percent"),
    "avg_rel_hum_pst1hr": _entry("relative_humidity", "percent"),
    "dwpt_temp": _entry("dew_point", "celsius"),
    "stn_pres": _entry("station_pressure", "hectopascal"),
    "mslp": _entry("sea_level_pressure", "hectopascal"),
    "avg_wnd_spd_10m_pst1hr": _entry("wind_speed", "kilometre_per_hour"),
    "max_wnd_spd_10m_pst1hr": _entry("wind_gust", "kilometre_per_hour"),
    "avg_wnd_dir_10m_pst1hr": _entry("wind_direction", "degree"),
    "pcpn_amt_pst1hr": _entry("precipitation", "millimetre"),
    "snw_dpth": _entry("snow_depth", "centimetre"),
    "vis": _entry("visibility", "kilometre"),
    "data_avail": _entry("data_availability", "percent"),
    "min_batry_volt_pst1hr": _entry("battery_voltage", "volt"),
    "max_batry_volt_pst1hr": _entry("battery_voltage", "volt"),
}

# Campbell Scientific TOA5 field names
CAMPBELL_SCIENTIFIC = {
    "AirTC_Avg": _entry("air_temperature", "celsius"),
    "AirTC_Max": _entry("air_temperature", "celsius"),
    "AirTC_Min": _entry("air_temperature", "celsius"),
    "RH": _entry("relative_humidity", "percent"),
    "RH_Avg": _entry("relative_humidity", "percent"),
    "BP_Avg": _entry("station_pressure", "millibar"),
    "WS_ms_Avg": _entry("wind_speed", "metre_per_second"),
    "WS_ms_S_WVT": _entry("wind_speed", "metre_per_second"),
    "WS_ms_Max": _entry("wind_gust", "metre_per_second"),
    "WindDir_D1_WVT": _entry("wind_direction", "degree"),
    "Rain_mm_Tot": _entry("precipitation", "millimetre"),
    "DT_Avg": _entry("snow_depth", "metre"),
    "SlrW_Avg": _entry("solar_radiation", "watt_per_square_metre"),
    "BattV_Min": _entry("battery_voltage", "volt"),
    "BattV_Avg": _entry("battery_voltage", "volt"),
    "PTemp_C_Avg": _entry("panel_temperature", "celsius"),
    "Strikes_Tot": _entry("lightning_strikes", "count", OM_COUNT),
}

# Data Garrison export column names
DATA_GARRISON = {
    "Pressure": _entry("station_pressure", "millibar"),
    "Temperature": _entry("air_temperature", "celsius"),
    "RH": _entry("relative_humidity", "percent"),
    "Wind Speed": _entry("wind_speed", "metre_per_second"),
    "Gust Speed": _entry("wind_gust", "metre_per_second"),
    "Wind Direction": _entry("wind_direction", "degree"),
    "Solar Radiation": _entry("solar_radiation", "watt_per_square_metre"),
    "Battery Voltage": _entry("battery_voltage", "volt"),
}

SOURCE_TABLES = {
    "environment_canada": ENVIRONMENT_CANADA,
    "campbell_scientific": CAMPBELL_SCIENTIFIC,
    "data_garrison": DATA_GARRISON,
}


class Ontology:
    """Read-only lookup of source property keys for one data source."""

    def __init__(self, table: Dict[str, OntologyEntry]):
        self._table = dict(table)

    @classmethod
    def for_source(cls, source: str) -> "Ontology":
        if source not in SOURCE_TABLES:
            raise ValueError(
                f"Unknown source '{source}'. Choose from: {', '.join(SOURCE_TABLES)}"
            )
        return cls(SOURCE_TABLES[source])

    def __contains__(self, source_property_id: str) -> bool:
        return source_property_id in self._table

    def resolve(self, source_property_id: str) -> OntologyEntry:
        """Return the canonical entry, or a generic one for unknown keys."""
        entry = self._table.get(source_property_id)
        if entry is None:
            return OntologyEntry(label=source_property_id)
        return entry

    def observation_type(self, source_property_id: str) -> str:
        return self.resolve(source_property_id).observation_type

    @staticmethod
    def coerce(value: Any, observation_type: Optional[str]) -> Any:
        """
        Convert a raw result to the JSON type matching its observation type.

        Measurements become floats, counts become integers, and every other
        type is passed through as text. Raises ``ValueError`` for numeric types
        whose value does not parse or is not finite.
        """
        if observation_type not in (OM_MEASUREMENT, OM_COUNT):
            return value if isinstance(value, str) else str(value)

        number = float(value.strip() if isinstance(value, str) else value)
        if not math.isfinite(number):
            # NaN and infinities are not valid JSON numbers
            raise ValueError(f"Non-finite result: {value!r}")
        if observation_type == OM_COUNT:
            return int(number)
        return number
