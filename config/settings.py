"""
Configuration. All settings from env vars or a .env file.
No YAML. No TOML parsing. Durations are milliseconds, like the feed's own
deployment config.
"""

import os
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path

# Auto-load .env file so you don't need `export $(grep ...)` every time
from dotenv import load_dotenv
load_dotenv()

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class Config:
    # ── Detik web service ──
    # Base URL including the topic, excluding the page number
    service_url: str = os.environ.get("DETIK_SERVICE_URL", "https://example.com/latest?topic=2")
    # Milliseconds between cycle starts (5 min)
    poll_interval: int = int(os.environ.get("DETIK_POLL_INTERVAL", str(1000 * 60 * 5)))
    # Maximum age in milliseconds of reports which will be processed (1 hr)
    historical_load_period: int = int(os.environ.get("DETIK_HISTORICAL_LOAD_PERIOD", str(1000 * 60 * 60)))
    request_timeout: int = int(os.environ.get("DETIK_REQUEST_TIMEOUT", "30"))
    user_agent: str = "detik-ingest/0.1"

    # ── Storage ──
    db_path: Path = Path(os.environ.get("DETIK_DB_PATH", "data/detik.db"))
    table_reports: str = os.environ.get("DETIK_TABLE_REPORTS", "detik_reports")
    table_users: str = os.environ.get("DETIK_TABLE_USERS", "detik_users")

    def __post_init__(self):
        for name in ("table_reports", "table_users"):
            value = getattr(self, name)
            if not _IDENTIFIER.match(value):
                raise ValueError(f"{name} is not a valid table name: {value!r}")
        self.db_path = Path(self.db_path)

    def merged(self, **overrides) -> "Config":
        """Copy of this config with data-source specific values laid on top."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        return replace(self, **overrides)


def load_config() -> Config:
    return Config()
