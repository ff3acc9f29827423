"""Tests for flight_loader.pipeline against an in-memory Elasticsearch."""

import csv
import io
import threading
import zipfile

import pytest

from conftest import AIRLINE_ROWS, AIRPORT_ROWS, FLIGHT_HEADER, make_flight_row
from flight_loader.config import LoadSettings
from flight_loader.delivery import BulkDeliverer, DeliveryState
from flight_loader.errors import (
    CoercionError,
    DuplicateDocumentError,
    LookupMissError,
    ReferenceLoadError,
    SourceReadError,
)
from flight_loader.pipeline import FlightPipeline, run_load


def _write_csv(path, rows):
    with path.open("w", encoding="utf-8", newline="") as handle:
        csv.writer(handle).writerows(rows)


@pytest.fixture
def data_dir(tmp_path):
    _write_csv(tmp_path / "airlines.csv", AIRLINE_ROWS)
    _write_csv(tmp_path / "airports.csv", AIRPORT_ROWS)
    _write_csv(
        tmp_path / "2017-01.csv",
        [
            FLIGHT_HEADER,
            make_flight_row(),
            make_flight_row(OP_CARRIER_FL_NUM="124", CRS_DEP_TIME="1300"),
        ],
    )
    _write_csv(
        tmp_path / "2017-07.csv",
        [
            FLIGHT_HEADER,
            make_flight_row(FL_DATE="2017-07-04", DEP_TIME="2400", CANCELLATION_CODE="D"),
        ],
    )
    return tmp_path


def _settings(data_dir, files, **kwargs):
    return LoadSettings(data_dir=data_dir, flight_files=files, batch_size=1, **kwargs)


def _deliverer(es, settings):
    return BulkDeliverer(
        es, settings.index, batch_size=settings.batch_size, workers=settings.workers
    )


class SlowClient:
    """Holds every bulk request until ``release`` is set."""

    def __init__(self, delegate):
        self.delegate = delegate
        self.release = threading.Event()
        self.started = threading.Event()

    def bulk(self, operations=None, refresh=None, **kwargs):
        self.started.set()
        self.release.wait(timeout=5)
        return self.delegate.bulk(operations=operations, refresh=refresh)


class TestRunLoad:
    def test_loads_every_file(self, es, data_dir):
        settings = _settings(data_dir, ["2017-01.csv", "2017-07.csv"])
        with _deliverer(es, settings) as deliverer:
            result = run_load(settings, deliverer)

        assert result.ok
        assert result.files == 2
        assert result.rows == 3
        assert result.headers == 2
        assert result.delivered == 3
        assert len(es.documents) == 3

        doc = es.documents[("flights", "2017-07-04.1200.AA123.N1234.ORD.SFO")]
        assert doc["actual_departure_time"] == "2017-07-04T23:59:00-05:00"
        assert doc["cancelation_reason"] == "Security"

    def test_rerun_conflicts_on_existing_documents(self, es, data_dir):
        settings = _settings(data_dir, ["2017-01.csv"])
        with _deliverer(es, settings) as deliverer:
            assert run_load(settings, deliverer).ok

        with _deliverer(es, settings) as deliverer:
            result = run_load(settings, deliverer)

        assert not result.ok
        assert isinstance(result.error, DuplicateDocumentError)
        assert result.record_id in {
            "2017-01-31.1200.AA123.N1234.ORD.SFO",
            "2017-01-31.1300.AA124.N1234.ORD.SFO",
        }

    def test_reference_error_aborts_before_flights(self, es, data_dir):
        _write_csv(data_dir / "airports.csv", [["1", "short row"]])
        settings = _settings(data_dir, ["2017-01.csv"])
        with _deliverer(es, settings) as deliverer:
            result = run_load(settings, deliverer)

        assert isinstance(result.error, ReferenceLoadError)
        assert es.bulk_calls == []

    def test_missing_flight_file(self, es, data_dir):
        settings = _settings(data_dir, ["2017-01.csv", "2099-01.csv"])
        with _deliverer(es, settings) as deliverer:
            result = run_load(settings, deliverer)

        assert isinstance(result.error, SourceReadError)
        assert result.files == 1


class TestFlightPipeline:
    def test_unknown_airport_aborts_run(self, es, tables, tmp_path):
        flights = tmp_path / "flights.csv"
        _write_csv(flights, [make_flight_row(), make_flight_row(DEST="XXX"), make_flight_row(OP_CARRIER_FL_NUM="9")])

        with BulkDeliverer(es, "flights", batch_size=10) as deliverer:
            result = FlightPipeline(tables, deliverer).run([flights])

        assert isinstance(result.error, LookupMissError)
        assert result.record_id == "2017-01-31.1200.AA123.N1234.ORD.XXX"
        assert result.rows == 1
        assert es.bulk_calls == []

    def test_coercion_error_is_reported(self, es, tables, tmp_path):
        flights = tmp_path / "flights.csv"
        _write_csv(flights, [make_flight_row(DISTANCE="far")])

        with BulkDeliverer(es, "flights") as deliverer:
            result = FlightPipeline(tables, deliverer).run([flights])

        assert isinstance(result.error, CoercionError)
        assert not result.ok

    def test_reads_zip_archives_and_skips_blank_lines(self, es, tables, tmp_path):
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(FLIGHT_HEADER)
        writer.writerow(make_flight_row())
        buffer.write("\r\n")
        archive_path = tmp_path / "2017-01.zip"
        with zipfile.ZipFile(archive_path, "w") as archive:
            archive.writestr("2017-01.csv", buffer.getvalue())

        with BulkDeliverer(es, "flights") as deliverer:
            result = FlightPipeline(tables, deliverer).run([archive_path])

        assert result.ok
        assert result.delivered == 1

    def test_transform_error_drops_queued_batches(self, es, tables, tmp_path):
        flights = tmp_path / "flights.csv"
        _write_csv(
            flights,
            [
                make_flight_row(OP_CARRIER_FL_NUM="1"),
                make_flight_row(OP_CARRIER_FL_NUM="2"),
                make_flight_row(OP_CARRIER_FL_NUM="3"),
                make_flight_row(OP_CARRIER_FL_NUM="4", DISTANCE="far"),
            ],
        )
        client = SlowClient(es)
        deliverer = BulkDeliverer(client, "flights", batch_size=1, workers=1, queue_size=4)
        try:
            result = FlightPipeline(tables, deliverer).run([flights])
        finally:
            client.release.set()
            deliverer.close()

        assert isinstance(result.error, CoercionError)
        assert result.rows == 3
        assert deliverer.state is DeliveryState.ABORTED
        assert deliverer.error is result.error
        assert ("flights", "2017-01-31.1200.AA2.N1234.ORD.SFO") not in es.documents
        assert ("flights", "2017-01-31.1200.AA3.N1234.ORD.SFO") not in es.documents
        # Only the batch a worker had already picked up may reach the cluster.
        assert len(es.documents) <= 1
