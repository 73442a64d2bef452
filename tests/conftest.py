import json
import sys
import tempfile
from pathlib import Path

import pytest
import requests

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Config
from collectors.detik import DetikCollector, Reports
from storage.db import Storage

NOW = 1_700_000_000
SERVICE_URL = "https://detik.test/latest?topic=2"


def make_result(contribution_id, age=60, longitude=106.8, latitude=-6.2, **overrides):
    """A feed result as the Detik API returns it. `age` is seconds before NOW."""
    base = {
        "contributionId": contribution_id,
        "date": {
            "update": {"sec": NOW - age},
            "create": {"sec": NOW - age - 30},
        },
        "text": f"Banjir di jalan {contribution_id}",
        "title": f"Laporan {contribution_id}",
        "url": f"http:\\/\\/detik.test\\/report\\/{contribution_id}",
        "files": {"photo": f"http:\\/\\/detik.test\\/photo\\/{contribution_id}.jpg"},
        "location": {"geospatial": {"longitude": longitude, "latitude": latitude}},
        "user": {"creator": {"id": f"user-{contribution_id % 3}"}},
    }
    base.update(overrides)
    return base


class FakeResponse:
    def __init__(self, body, status_code=200):
        self.text = body if isinstance(body, str) else json.dumps(body)
        self.content = self.text.encode()
        self.status_code = status_code

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """
    Stands in for requests.Session. Serves queued responses in order;
    an exception instance in the queue is raised instead.
    """

    def __init__(self, *responses):
        self.headers = {}
        self.requested = []
        self._responses = list(responses)

    def get(self, url, timeout=None):
        self.requested.append(url)
        if not self._responses:
            return FakeResponse({"result": []})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def page(*results):
    return FakeResponse({"result": list(results)})


@pytest.fixture
def config(tmp_path):
    return Config(
        service_url=SERVICE_URL,
        poll_interval=1000 * 60 * 5,
        historical_load_period=1000 * 60 * 60,
        request_timeout=5,
        db_path=tmp_path / "detik.db",
        table_reports="detik_reports",
        table_users="detik_users",
    )


@pytest.fixture
def tmp_storage():
    """Create a temporary Storage instance for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = Storage(Path(tmpdir) / "test.db")
        yield storage
        storage.close()


@pytest.fixture
def make_collector(tmp_storage, config):
    def _make(*responses):
        session = FakeSession(*responses)
        reports = Reports(storage=tmp_storage, config=config)
        collector = DetikCollector(reports, config, session=session, clock=lambda: NOW)
        return collector, session
    return _make


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
