"""
Shared fixtures: fake source servers and a fake SensorThings API.
"""

import json
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from transloader.config import TransloaderConfig
from transloader.http import HTTPClient

STA_BASE = "http://sta.example/v1.0"

STATION_LIST_URL = "https://dd.weather.gc.ca/observations/doc/swob-xml_station_list.csv"
CXCM_SWOB_URL = "https://dd.weather.gc.ca/observations/swob-ml/latest/CXCM-AUTO-swob.xml"

STATION_LIST_CSV = (
    "IATA_ID,Name,WMO_ID,MSC_ID,Latitude,Longitude,Elevation(m),Data_Provider,"
    "Dataset/Network,AUTO/MAN,Province/Territory\n"
    "CXCM,Cambridge Bay,71288,2400595,69.1,-105.13,31,MSC,DMS,AUTO,NU\n"
    "CVXY,Some Other Station,,,50.0,-100.0,300,MSC,DMS,AUTO,MB\n"
)

CXCM_SWOB = """<?xml version="1.0" encoding="UTF-8"?>
<om:ObservationCollection xmlns="http://dms.ec.gc.ca/schema/point-observation/2.0"
    xmlns:gml="http://www.opengis.net/gml"
    xmlns:om="http://www.opengis.net/om/1.0"
    xmlns:xlink="http://www.w3.org/1999/xlink">
  <om:member>
    <om:Observation>
      <om:metadata>
        <set>
          <identification-elements>
            <element name="stn_nam" uom="unitless" value="CAMBRIDGE BAY"/>
            <element name="tc_id" uom="unitless" value="XCM"/>
            <element name="date_tm" uom="datetime" value="2019-07-03T14:00:00.000Z"/>
            <element name="lat" uom="deg" value="69.1"/>
            <element name="long" uom="deg" value="-105.13"/>
            <element name="stn_elev" uom="m" value="31.0"/>
          </identification-elements>
        </set>
      </om:metadata>
      <om:samplingTime>
        <gml:TimeInstant>
          <gml:timePosition>2019-07-03T14:00:00.000Z</gml:timePosition>
        </gml:TimeInstant>
      </om:samplingTime>
      <om:resultTime>
        <gml:TimeInstant>
          <gml:timePosition>2019-07-03T14:02:11.000Z</gml:timePosition>
        </gml:TimeInstant>
      </om:resultTime>
      <om:result>
        <elements>
          <element name="air_temp" uom="°C" value="8.4"/>
          <element name="rel_hum" uom="%" value="71"/>
          <element name="stn_pres" uom="hPa" value="1011.3"/>
          <element name="data_avail" uom="%" value="100.0"/>
          <element name="snw_dpth" uom="cm" value="MSNG"/>
        </elements>
      </om:result>
    </om:Observation>
  </om:member>
</om:ObservationCollection>
""".encode("utf-8")

TOA5_URL = "http://logger.example/data/606830_Table1.dat"

TOA5_HEADER = (
    '"TOA5","606830","CR1000X","12345","CR1000X.Std.03","CPU:met.CR1X","1234","Table1"\n'
    '"TIMESTAMP","RECORD","BP_Avg","AirTC_Avg","Strikes_Tot"\n'
    '"TS","RN","mbar","Deg C",""\n'
    '"","","Avg","Avg","Tot"\n'
)
TOA5_ROWS = [
    '"2019-07-03 08:00:00",1,1012.5,8.1,0\n',
    '"2019-07-03 08:30:00",2,1012.4,8.6,2\n',
    '"2019-07-03 09:00:00",3,1012.1,"NAN",1\n',
]

DG_USER = "300234063581640"
DG_STATION = "300234065673960"
DG_URL = (
    f"https://datagarrison.com/users/{DG_USER}/{DG_STATION}/temp/{DG_STATION}_live.txt"
)
DG_EXPORT = (
    "Station: Bay Station\n"
    "Latitude: 61.5\n"
    "Longitude: -117.2\n"
    "UTC Offset: -07:00\n"
    "Date_Time\tPressure (mbar)\tTemperature (*C)\tRH (%)\n"
    "07/03/19 08:00:00\t1001.2\t9.1\t80.5\n"
    "07/03/19 08:10:00\t1001.1\t9.3\t---\n"
)


class FakeFileServer:
    """
    Serves mutable in-memory files with HEAD and byte-range GET support.

    ``overrides[(method, url)]`` forces a status code for that request.
    """

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.overrides: Dict[Tuple[str, str], int] = {}
        self.requests: List[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        status = self.overrides.get((request.method, url))
        if status is not None:
            return httpx.Response(status)

        body = self.files.get(url)
        if body is None:
            return httpx.Response(404)

        if request.method == "HEAD":
            return httpx.Response(200, headers={"Content-Length": str(len(body))})

        range_header = request.headers.get("Range")
        if range_header:
            start = int(range_header.split("=")[1].rstrip("-"))
            if start >= len(body):
                return httpx.Response(416)
            return httpx.Response(206, content=body[start:])
        return httpx.Response(200, content=body)

    def requests_for(self, method: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method]


class FakeSensorThings:
    """Accepts entity POSTs and answers with a Location header."""

    def __init__(self, base_url: str = STA_BASE):
        self.base_url = base_url
        self.posts: List[Tuple[str, dict]] = []
        self.fail_collection: Optional[str] = None
        self._next_id = 0

    def handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        collection = url.rstrip("/").rsplit("/", 1)[-1]
        if collection == self.fail_collection:
            return httpx.Response(500)

        payload = json.loads(request.content)
        self.posts.append((url, payload))
        self._next_id += 1
        link = f"{self.base_url}/{collection}({self._next_id})"
        return httpx.Response(
            201, headers={"Location": link}, json={"@iot.selfLink": link}
        )

    def posted(self, collection: str) -> List[dict]:
        return [
            payload
            for url, payload in self.posts
            if url.rstrip("/").rsplit("/", 1)[-1] == collection
        ]


@pytest.fixture
def file_server():
    return FakeFileServer()


@pytest.fixture
def sensorthings():
    return FakeSensorThings()


@pytest.fixture
def http(file_server, sensorthings):
    """HTTPClient routed to the fake servers by host."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "sta.example":
            return sensorthings.handle(request)
        return file_server.handle(request)

    client = HTTPClient(TransloaderConfig(timeout=5), transport=httpx.MockTransport(handler))
    yield client
    client.close()


@pytest.fixture
def environment_canada_files(file_server):
    file_server.files[STATION_LIST_URL] = STATION_LIST_CSV.encode("utf-8")
    file_server.files[CXCM_SWOB_URL] = CXCM_SWOB
    return file_server
