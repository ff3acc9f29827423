"""Connection and load settings for the flight loader."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv
from elasticsearch import Elasticsearch

from .delivery import BATCH_SIZE, WORKERS

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "elasticsearch.yml"
DEFAULT_MAPPING_PATH = PROJECT_ROOT / "config" / "mappings-flights.json"
DEFAULT_INDEX = "flights"
DEFAULT_AIRLINES_FILE = "airlines.csv"
DEFAULT_AIRPORTS_FILE = "airports.csv"
DEFAULT_FLIGHT_FILES = (
    "2017-01.csv",
    "2017-02.csv",
    "2017-03.csv",
    "2017-04.csv",
    "2017-05.csv",
    "2017-06.csv",
    "2017-07.csv",
    "2017-08.csv",
    "2017-09.csv",
    "2017-10.csv",
    "2017-11.csv",
    "2017-12.csv",
    "2018-01.csv",
    "2018-02.csv",
    "2018-03.csv",
    "2018-04.csv",
    "2018-05.csv",
    "2018-06.csv",
    "2018-07.csv",
)


def default_data_dir() -> Path:
    return Path(os.getenv("HOME", "~")).expanduser() / "data" / "flights"


def load_yaml(path: Path) -> Dict[str, object]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Configuration must be a mapping (found {type(data).__name__})")
    return data


def load_json(path: Path) -> Dict[str, object]:
    if not path.exists():
        raise FileNotFoundError(f"Mapping file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    if not isinstance(data, dict):
        raise ValueError(f"Mapping file must define a JSON object (found {type(data).__name__})")
    return data


@dataclass
class ElasticsearchConfig:
    endpoint: str
    headers: Dict[str, str] = field(default_factory=dict)
    user: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None
    ssl_verify: bool = True
    ca_file: Optional[str] = None
    ca_path: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Dict[str, object]) -> "ElasticsearchConfig":
        endpoint = str(data.get("endpoint") or "").strip()
        if not endpoint:
            raise ValueError("The Elasticsearch config must include an 'endpoint'.")

        headers = data.get("headers") or {}
        if not isinstance(headers, dict):
            raise ValueError("'headers' must be a mapping of string keys to values.")

        def optional_str(value: object) -> Optional[str]:
            if value is None:
                return None
            text = str(value).strip()
            return text or None

        ssl_verify_value = data.get("ssl_verify", True)
        if isinstance(ssl_verify_value, bool):
            ssl_verify = ssl_verify_value
        elif isinstance(ssl_verify_value, str):
            ssl_verify = ssl_verify_value.strip().lower() not in {"false", "0", "no", "n"}
        else:
            ssl_verify = True

        return cls(
            endpoint=endpoint,
            headers={str(k): str(v) for k, v in headers.items()},
            user=optional_str(data.get("user")),
            password=optional_str(data.get("password")),
            api_key=optional_str(data.get("api_key")),
            ssl_verify=ssl_verify,
            ca_file=optional_str(data.get("ca_file")),
            ca_path=optional_str(data.get("ca_path")),
        )

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ElasticsearchConfig":
        """Read ELASTIC_ENDPOINT / ELASTIC_USERNAME / ELASTIC_PASSWORD / ELASTIC_API_KEY."""
        if environ is None:
            load_dotenv()
            environ = dict(os.environ)
        return cls.from_mapping(
            {
                "endpoint": environ.get("ELASTIC_ENDPOINT"),
                "user": environ.get("ELASTIC_USERNAME"),
                "password": environ.get("ELASTIC_PASSWORD"),
                "api_key": environ.get("ELASTIC_API_KEY"),
                "ssl_verify": environ.get("ELASTIC_SSL_VERIFY", True),
            }
        )


def create_elasticsearch_client(config: ElasticsearchConfig) -> Elasticsearch:
    """Create an Elasticsearch client from configuration."""
    client_kwargs: Dict[str, object] = {
        "hosts": [config.endpoint],
        "verify_certs": config.ssl_verify,
        "headers": config.headers,
    }

    if config.api_key:
        client_kwargs["api_key"] = config.api_key
    elif config.user and config.password:
        client_kwargs["basic_auth"] = (config.user, config.password)

    if config.ca_file:
        client_kwargs["ca_certs"] = config.ca_file
    elif config.ca_path:
        client_kwargs["ca_certs"] = config.ca_path

    return Elasticsearch(**client_kwargs)


@dataclass
class LoadSettings:
    data_dir: Path
    airlines_file: str = DEFAULT_AIRLINES_FILE
    airports_file: str = DEFAULT_AIRPORTS_FILE
    flight_files: List[str] = field(default_factory=lambda: list(DEFAULT_FLIGHT_FILES))
    index: str = DEFAULT_INDEX
    batch_size: int = BATCH_SIZE
    workers: int = WORKERS
    queue_size: Optional[int] = None
    refresh: bool = False

    @property
    def airlines_path(self) -> Path:
        return self.data_dir / self.airlines_file

    @property
    def airports_path(self) -> Path:
        return self.data_dir / self.airports_file
