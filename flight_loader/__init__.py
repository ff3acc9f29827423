"""Load BTS flight records into Elasticsearch."""

from .delivery import BulkDeliverer, DeliveryState
from .models import AirlineRef, AirportRef, FlightRecord
from .pipeline import FlightPipeline, RunResult, run_load
from .reference import ReferenceTables, load_airlines, load_airports, load_reference_tables
from .transform import RecordTransformer

__all__ = [
    "AirlineRef",
    "AirportRef",
    "BulkDeliverer",
    "DeliveryState",
    "FlightPipeline",
    "FlightRecord",
    "RecordTransformer",
    "ReferenceTables",
    "RunResult",
    "load_airlines",
    "load_airports",
    "load_reference_tables",
    "run_load",
]
