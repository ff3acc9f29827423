"""Concurrent create-only bulk delivery into Elasticsearch."""

from __future__ import annotations

import enum
import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Set

from .errors import DeliveryError, DuplicateDocumentError, LoaderError
from .models import FlightRecord

LOGGER = logging.getLogger(__name__)

BATCH_SIZE = 500
WORKERS = 4


class DeliveryState(enum.Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ABORTED = "aborted"


class BulkDeliverer:
    """Batch records into ``create`` bulk requests sent from a fixed pool.

    At most ``workers + queue_size`` batches are in flight; ``add`` blocks
    once that bound is reached. The first failed request or failed item
    aborts delivery for good: no further batches are enqueued and ``add`` /
    ``flush`` re-raise that error.
    """

    def __init__(
        self,
        client,
        index: str,
        *,
        batch_size: int = BATCH_SIZE,
        workers: int = WORKERS,
        queue_size: Optional[int] = None,
        refresh: bool = False,
    ):
        self._client = client
        self._index = index
        self._batch_size = max(1, batch_size)
        self._workers = max(1, workers)
        backlog = self._workers if queue_size is None else max(0, queue_size)
        self._slots = threading.BoundedSemaphore(self._workers + backlog)
        self._executor = ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="bulk-worker"
        )
        self._refresh = refresh

        self._buffer: List[FlightRecord] = []
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._aborted = threading.Event()
        self._error: Optional[LoaderError] = None
        self._state = DeliveryState.IDLE
        self._execution_id = 0
        self._delivered = 0

    def __enter__(self) -> "BulkDeliverer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def state(self) -> DeliveryState:
        return self._state

    @property
    def delivered(self) -> int:
        return self._delivered

    @property
    def batches(self) -> int:
        return self._execution_id

    @property
    def error(self) -> Optional[LoaderError]:
        return self._error

    def abort(self, error: LoaderError) -> None:
        """Stop delivery because of a fatal error raised outside the pool.

        Buffered records and batches still waiting for a worker are dropped.
        A batch already inside ``client.bulk`` runs to completion.
        """
        self._buffer = []
        self._abort(error)

    def add(self, record: FlightRecord) -> None:
        self._raise_if_aborted()
        if self._state is DeliveryState.COMPLETED:
            raise DeliveryError("Deliverer already flushed", record_id=record.flight_id)

        self._buffer.append(record)
        self._set_state(DeliveryState.ACCUMULATING)
        if len(self._buffer) >= self._batch_size:
            self._submit()

    def flush(self) -> int:
        """Send the buffered tail on this thread and wait for every batch.

        Returns the number of documents acknowledged by Elasticsearch.
        """
        self._raise_if_aborted()
        if self._buffer:
            batch, self._buffer = self._buffer, []
            self._set_state(DeliveryState.SUBMITTING)
            self._execution_id += 1
            try:
                self._send(self._execution_id, batch)
            except DeliveryError as exc:
                self._abort(exc)

        with self._lock:
            outstanding = list(self._pending)
        wait(outstanding)
        # Done-callbacks may still be running after wait() returns.
        for future in outstanding:
            exc = None if future.cancelled() else future.exception()
            if exc is not None:
                self._abort(exc)

        self._raise_if_aborted()
        self._set_state(DeliveryState.COMPLETED)
        return self._delivered

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=self._aborted.is_set())

    def _submit(self) -> None:
        batch, self._buffer = self._buffer, []
        # Blocks while every worker is busy and the backlog is full.
        self._slots.acquire()
        if self._aborted.is_set():
            self._slots.release()
            self._raise_if_aborted()

        self._set_state(DeliveryState.SUBMITTING)
        self._execution_id += 1
        future = self._executor.submit(self._send, self._execution_id, batch)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._after)
        self._set_state(DeliveryState.ACCUMULATING)

    def _after(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        exc = None if future.cancelled() else future.exception()
        if exc is not None:
            self._abort(exc)
        # Released only after the abort is recorded so a blocked producer sees it.
        self._slots.release()

    def _send(self, execution_id: int, batch: List[FlightRecord]) -> int:
        if self._aborted.is_set():
            LOGGER.debug("Bulk request %s dropped after abort", execution_id)
            return 0

        lines: List[str] = []
        for record in batch:
            lines.append(json.dumps({"create": {"_index": self._index, "_id": record.flight_id}}))
            lines.append(json.dumps(record.to_document(), ensure_ascii=False))
        payload = ("\n".join(lines) + "\n").encode("utf-8")

        try:
            result = self._client.bulk(operations=payload, refresh=self._refresh)
        except Exception as exc:
            raise DeliveryError(f"Bulk request {execution_id} failed: {exc}") from exc

        body = getattr(result, "body", result)
        if body.get("errors"):
            raise self._item_error(execution_id, body.get("items", []))

        with self._lock:
            self._delivered += len(batch)
            delivered = self._delivered
        LOGGER.debug(
            "Bulk request %s committed %s documents (%s total)",
            execution_id,
            len(batch),
            f"{delivered:,}",
        )
        return len(batch)

    def _item_error(self, execution_id: int, items: List[Dict[str, object]]) -> DeliveryError:
        failures = []
        for item in items:
            if not isinstance(item, dict):
                continue
            outcome = item.get("create") or {}
            if outcome.get("error"):
                failures.append(outcome)

        for failure in failures[:5]:
            LOGGER.error(
                "Bulk item error: id=%s status=%s error=%s",
                failure.get("_id"),
                failure.get("status"),
                failure.get("error"),
            )

        if not failures:
            return DeliveryError(f"Bulk request {execution_id} reported errors")

        first = failures[0]
        error = first.get("error")
        reason = error.get("reason") if isinstance(error, dict) else error
        error_cls = DuplicateDocumentError if first.get("status") == 409 else DeliveryError
        return error_cls(
            f"Bulk request {execution_id} reported {len(failures)} failed item(s): {reason}",
            record_id=first.get("_id"),
        )

    def _abort(self, exc: BaseException) -> None:
        with self._lock:
            if self._error is not None:
                return
            if isinstance(exc, LoaderError):
                self._error = exc
            else:
                self._error = DeliveryError(f"Bulk request failed: {exc}")
            self._state = DeliveryState.ABORTED
            self._aborted.set()
            queued = list(self._pending)
        LOGGER.error("Bulk delivery aborted: %s", self._error)

        # Only batches not yet picked up by a worker can be cancelled; their
        # done-callbacks release the backpressure slots.
        for future in queued:
            future.cancel()

    def _raise_if_aborted(self) -> None:
        if self._aborted.is_set():
            raise self._error

    def _set_state(self, state: DeliveryState) -> None:
        with self._lock:
            if self._state is not DeliveryState.ABORTED:
                self._state = state
