"""Shared fixtures: reference rows, flight rows and an in-memory Elasticsearch."""

import json
import threading
from typing import Dict, List

import pytest

from flight_loader.reference import ReferenceTables, load_airlines, load_airports


AIRLINE_ROWS = [
    ["24", "American Airlines", "", "AA", "AAL", "AMERICAN", "United States", "Y"],
    ["2009", "Delta Air Lines", "", "DL", "DAL", "DELTA", "United States", "Y"],
    ["-1", "Unknown", "\\N", "-", "N/A", "\\N", "\\N", "Y"],
]

AIRPORT_ROWS = [
    [
        "3830", "Chicago O'Hare International Airport", "Chicago", "United States",
        "ORD", "KORD", "41.9786", "-87.9048", "672", "-6", "A", "America/Chicago",
        "airport", "OurAirports",
    ],
    [
        "3469", "San Francisco International Airport", "San Francisco", "United States",
        "SFO", "KSFO", "37.61899948120117", "-122.375", "13", "-8", "A",
        "America/Los_Angeles", "airport", "OurAirports",
    ],
]

FLIGHT_HEADER = [
    "FL_DATE", "OP_CARRIER", "TAIL_NUM", "OP_CARRIER_FL_NUM", "ORIGIN", "DEST",
    "CRS_DEP_TIME", "DEP_TIME", "DEP_DELAY", "TAXI_OUT", "TAXI_IN", "CRS_ARR_TIME",
    "ARR_TIME", "ARR_DELAY", "CANCELLED", "CANCELLATION_CODE", "DIVERTED",
    "CRS_ELAPSED_TIME", "ACTUAL_ELAPSED_TIME", "AIR_TIME", "FLIGHTS", "DISTANCE",
    "CARRIER_DELAY", "WEATHER_DELAY", "NAS_DELAY", "SECURITY_DELAY", "LATE_AIRCRAFT_DELAY",
]

FLIGHT_DEFAULTS = {
    "FL_DATE": "2017-01-31",
    "OP_CARRIER": "AA",
    "TAIL_NUM": "N1234",
    "OP_CARRIER_FL_NUM": "123",
    "ORIGIN": "ORD",
    "DEST": "SFO",
    "CRS_DEP_TIME": "1200",
    "DEP_TIME": "1215",
    "DEP_DELAY": "15.00",
    "TAXI_OUT": "20.00",
    "TAXI_IN": "5.00",
    "CRS_ARR_TIME": "1430",
    "ARR_TIME": "1440",
    "ARR_DELAY": "10.00",
    "CANCELLED": "0.00",
    "CANCELLATION_CODE": "",
    "DIVERTED": "0.00",
    "CRS_ELAPSED_TIME": "270.00",
    "ACTUAL_ELAPSED_TIME": "265.00",
    "AIR_TIME": "240.00",
    "FLIGHTS": "1.00",
    "DISTANCE": "1846.00",
    "CARRIER_DELAY": "",
    "WEATHER_DELAY": "",
    "NAS_DELAY": "",
    "SECURITY_DELAY": "",
    "LATE_AIRCRAFT_DELAY": "",
}


def make_flight_row(**overrides: str) -> List[str]:
    values = dict(FLIGHT_DEFAULTS)
    for key, value in overrides.items():
        if key not in values:
            raise KeyError(key)
        values[key] = value
    return [values[column] for column in FLIGHT_HEADER]


class _Indices:
    def __init__(self, client: "FakeElasticsearch"):
        self._client = client

    def exists(self, index: str) -> bool:
        return index in self._client.index_bodies

    def create(self, index: str, body: Dict[str, object]) -> Dict[str, object]:
        self._client.index_bodies[index] = body
        return {"acknowledged": True, "index": index}

    def delete(self, index: str) -> Dict[str, object]:
        self._client.index_bodies.pop(index, None)
        self._client.documents = {
            key: doc for key, doc in self._client.documents.items() if key[0] != index
        }
        return {"acknowledged": True}


class _Cluster:
    def health(self) -> Dict[str, object]:
        return {"status": "green", "active_shards": 1, "number_of_nodes": 1}


class FakeElasticsearch:
    """Bulk endpoint that stores documents and honours create-only writes."""

    def __init__(self):
        self.documents: Dict[tuple, Dict[str, object]] = {}
        self.index_bodies: Dict[str, Dict[str, object]] = {}
        self.bulk_calls: List[int] = []
        self.refresh_values: List[object] = []
        self.indices = _Indices(self)
        self.cluster = _Cluster()
        self._lock = threading.Lock()

    def bulk(self, operations=None, refresh=None, **kwargs):
        lines = operations.decode("utf-8").splitlines()
        items = []
        errors = False
        with self._lock:
            self.bulk_calls.append(len(lines) // 2)
            self.refresh_values.append(refresh)
            for action_line, doc_line in zip(lines[0::2], lines[1::2]):
                meta = json.loads(action_line)["create"]
                key = (meta["_index"], meta["_id"])
                if key in self.documents:
                    errors = True
                    items.append({
                        "create": {
                            "_index": meta["_index"],
                            "_id": meta["_id"],
                            "status": 409,
                            "error": {
                                "type": "version_conflict_engine_exception",
                                "reason": f"[{meta['_id']}]: version conflict, document already exists",
                            },
                        }
                    })
                    continue
                self.documents[key] = json.loads(doc_line)
                items.append({"create": {"_index": meta["_index"], "_id": meta["_id"], "status": 201}})
        return {"took": 1, "errors": errors, "items": items}


@pytest.fixture
def tables() -> ReferenceTables:
    return ReferenceTables(
        airlines=load_airlines(AIRLINE_ROWS),
        airports=load_airports(AIRPORT_ROWS),
    )


@pytest.fixture
def es() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture
def flight_row():
    return make_flight_row
