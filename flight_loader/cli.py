"""Command line entry point: load BTS flights into Elasticsearch."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .config import (
    DEFAULT_AIRLINES_FILE,
    DEFAULT_AIRPORTS_FILE,
    DEFAULT_CONFIG_PATH,
    DEFAULT_INDEX,
    DEFAULT_MAPPING_PATH,
    ElasticsearchConfig,
    LoadSettings,
    create_elasticsearch_client,
    default_data_dir,
    load_json,
    load_yaml,
)
from .delivery import BATCH_SIZE, WORKERS, BulkDeliverer
from .errors import LoaderError
from .indices import delete_index, ensure_index, report_status
from .pipeline import run_load
from .sources import resolve_file_path

LOGGER = logging.getLogger("flight_loader")

QUIET_LOGGERS = (
    "elasticsearch",
    "elasticsearch.transport",
    "elasticsearch.trace",
    "elastic_transport",
    "elastic_transport.transport",
    "urllib3",
    "urllib3.connectionpool",
    "urllib3.util.retry",
)


def configure_logging(verbose: bool = False) -> None:
    null_handler = logging.NullHandler()
    for logger_name in QUIET_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.addHandler(null_handler)
        logger.setLevel(logging.CRITICAL)
        logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers[:] = [handler]


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load flight records into Elasticsearch.")
    parser.add_argument(
        "-c",
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Elasticsearch config YAML; falls back to ELASTIC_* environment "
        f"variables when missing (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-m",
        "--mapping",
        default=str(DEFAULT_MAPPING_PATH),
        help=f"Path to mappings JSON (default: {DEFAULT_MAPPING_PATH})",
    )
    parser.add_argument(
        "-d",
        "--data-dir",
        help="Directory containing reference and flight files (default: $HOME/data/flights)",
    )
    parser.add_argument(
        "--airlines",
        default=DEFAULT_AIRLINES_FILE,
        help=f"Airlines reference file (default: {DEFAULT_AIRLINES_FILE})",
    )
    parser.add_argument(
        "--airports",
        default=DEFAULT_AIRPORTS_FILE,
        help=f"Airports reference file (default: {DEFAULT_AIRPORTS_FILE})",
    )
    parser.add_argument(
        "-f",
        "--file",
        action="append",
        dest="files",
        help="Flight file to load; repeat to load several in order (default: 2017-01 .. 2018-07)",
    )
    parser.add_argument("--index", default=DEFAULT_INDEX, help=f"Index name (default: {DEFAULT_INDEX})")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=BATCH_SIZE,
        help=f"Number of documents per bulk request (default: {BATCH_SIZE})",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=WORKERS,
        help=f"Concurrent bulk workers (default: {WORKERS})",
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        help="Batches allowed to wait for a worker before loading blocks (default: workers)",
    )
    parser.add_argument("--refresh", action="store_true", help="Request an index refresh after each bulk request")
    parser.add_argument("--status", action="store_true", help="Test connection and print cluster health status")
    parser.add_argument("--delete", action="store_true", help="Delete the target index and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def load_es_config(config_path: Path) -> ElasticsearchConfig:
    if config_path.exists():
        return ElasticsearchConfig.from_mapping(load_yaml(config_path))
    LOGGER.debug("Config %s not found, reading ELASTIC_* environment", config_path)
    return ElasticsearchConfig.from_env()


def build_settings(args: argparse.Namespace) -> LoadSettings:
    data_dir = Path(args.data_dir).expanduser().resolve() if args.data_dir else default_data_dir()
    settings = LoadSettings(
        data_dir=data_dir,
        airlines_file=args.airlines,
        airports_file=args.airports,
        index=args.index,
        batch_size=args.batch_size,
        workers=args.workers,
        queue_size=args.queue_size,
        refresh=args.refresh,
    )
    if args.files:
        settings.flight_files = [
            str(resolve_file_path(Path(name), data_dir)) for name in args.files
        ]
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.verbose)
    LOGGER.info("Elastic loader ... starting")

    if args.status and args.delete:
        raise SystemExit("Cannot use --status and --delete together.")

    try:
        es_config = load_es_config(Path(args.config))
        client = create_elasticsearch_client(es_config)
    except Exception as exc:
        LOGGER.error("Error initializing Elastic client: %s", exc)
        return 1
    LOGGER.info("Elastic server %s", es_config.endpoint)

    try:
        if args.status:
            report_status(client)
            return 0
        if args.delete:
            delete_index(client, args.index)
            return 0

        settings = build_settings(args)
        mapping = load_json(Path(args.mapping))
        ensure_index(client, settings.index, mapping)
    except (LoaderError, OSError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1

    with BulkDeliverer(
        client,
        settings.index,
        batch_size=settings.batch_size,
        workers=settings.workers,
        queue_size=settings.queue_size,
        refresh=settings.refresh,
    ) as deliverer:
        result = run_load(settings, deliverer)

    if not result.ok:
        LOGGER.error(
            "Load failed (id=%s): %s: %s",
            result.record_id or "-",
            type(result.error).__name__,
            result.error,
        )
        return 1

    LOGGER.info(
        "Load complete: %s documents from %s file(s), %s row(s) read",
        f"{result.delivered:,}",
        result.files,
        f"{result.rows:,}",
    )
    return 0


def run() -> None:
    start_time = time.perf_counter()
    try:
        status = main()
    finally:
        duration = time.perf_counter() - start_time
        minutes = int(duration // 60)
        seconds = duration % 60
        if minutes > 0:
            print(f"\nTotal time: {minutes}m {seconds:.2f}s")
        else:
            print(f"\nTotal time: {seconds:.2f}s")
    sys.exit(status)
