"""
Tests for decision tree loading from files and URLs.

Remote fetches use a stub session; no network access is needed.
"""
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import requests
import yaml

from ingestion import (
    DEFAULT_TREE_PATH,
    CircuitBreaker,
    CircuitOpenError,
    HttpClient,
    RetryConfig,
    TreeLoadError,
    TreeLoader,
)
from ingestion import http_client


TREE_URL = "https://example.org/ssvc/coordinator.json"


class StubResponse:
    def __init__(self, status_code, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class StubSession:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(http_client.time, "sleep", lambda seconds: None)


def _client(session, **kwargs):
    return HttpClient(
        retry_config=RetryConfig(max_retries=2, base_delay_seconds=0.0),
        session=session,
        **kwargs,
    )


class TestFileSources:

    def test_default_source_is_bundled_tree(self):
        loader = TreeLoader()
        assert loader.source == str(DEFAULT_TREE_PATH)

        tree = loader.load()

        assert tree.title == "CISA Coordinator"
        assert len(tree.decision_points) == 7
        assert loader.health.is_healthy
        assert loader.health.decision_points == 7

    def test_json_file(self, mini_document, write_tree):
        path = write_tree(mini_document)
        tree = TreeLoader({"source": str(path)}).load()
        assert tree.steps == ("Exploitation", "Mission", "Decision")

    def test_yaml_file(self, mini_document, tmp_path):
        path = tmp_path / "tree.yaml"
        path.write_text(yaml.safe_dump(mini_document))
        tree = TreeLoader({"source": str(path)}).load()
        assert tree.steps == ("Exploitation", "Mission", "Decision")

    def test_missing_file(self, tmp_path):
        loader = TreeLoader({"source": str(tmp_path / "absent.json")})
        with pytest.raises(TreeLoadError, match="not found"):
            loader.load()
        assert not loader.health.is_healthy
        assert "not found" in loader.health.error_message

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(TreeLoadError, match="parse"):
            TreeLoader({"source": str(path)}).load()

    def test_document_must_be_mapping(self, write_tree):
        path = write_tree([1, 2, 3])
        with pytest.raises(TreeLoadError, match="not a mapping"):
            TreeLoader({"source": str(path)}).load()

    def test_point_without_label(self, write_tree):
        path = write_tree({"decision_points": [{"key": "E", "options": []}]})
        with pytest.raises(TreeLoadError, match="Malformed"):
            TreeLoader({"source": str(path)}).load()

    def test_each_load_is_a_new_snapshot(self, mini_document, write_tree):
        path = write_tree(mini_document)
        loader = TreeLoader({"source": str(path)})
        first = loader.load()

        mini_document["decision_points"] = mini_document["decision_points"][:1]
        write_tree(mini_document)
        second = loader.load()

        assert first.steps == ("Exploitation", "Mission", "Decision")
        assert second.steps == ("Exploitation",)


class TestRemoteSources:

    def test_fetch_from_url(self, mini_document):
        session = StubSession(StubResponse(200, mini_document))
        loader = TreeLoader({"source": TREE_URL}, http_client=_client(session))

        tree = loader.load()

        assert loader.is_remote
        assert tree.title == "Mini Coordinator"
        assert session.calls[0][0] == "GET"
        assert session.calls[0][1] == TREE_URL

    def test_retries_transient_errors(self, mini_document):
        session = StubSession(
            StubResponse(503),
            requests.ConnectionError("reset"),
            StubResponse(200, mini_document),
        )
        tree = TreeLoader({"source": TREE_URL}, http_client=_client(session)).load()

        assert tree.steps == ("Exploitation", "Mission", "Decision")
        assert len(session.calls) == 3

    def test_retries_exhausted(self):
        session = StubSession(StubResponse(503), StubResponse(503), StubResponse(503))
        loader = TreeLoader({"source": TREE_URL}, http_client=_client(session))

        with pytest.raises(TreeLoadError, match="Failed to fetch"):
            loader.load()
        assert len(session.calls) == 3

    def test_client_error_not_retried(self):
        session = StubSession(StubResponse(404))
        with pytest.raises(TreeLoadError):
            TreeLoader({"source": TREE_URL}, http_client=_client(session)).load()
        assert len(session.calls) == 1

    def test_non_json_body(self):
        session = StubSession(StubResponse(200))
        with pytest.raises(TreeLoadError):
            TreeLoader({"source": TREE_URL}, http_client=_client(session)).load()

    def test_responses_cached(self, mini_document):
        session = StubSession(StubResponse(200, mini_document))
        client = _client(session)

        assert client.get_json(TREE_URL) == client.get_json(TREE_URL)
        assert len(session.calls) == 1

    def test_circuit_opens_after_failures(self):
        session = StubSession(StubResponse(404))
        client = _client(session, circuit_breaker=CircuitBreaker(failure_threshold=1))

        with pytest.raises(requests.HTTPError):
            client.get_json(TREE_URL)
        with pytest.raises(CircuitOpenError):
            client.get_json(TREE_URL)
        assert len(session.calls) == 1


class TestRetryConfig:

    def test_from_dict(self):
        config = RetryConfig.from_dict({"max_retries": 1, "timeout_seconds": 2})
        assert config.max_retries == 1
        assert config.timeout_seconds == 2.0
        assert config.base_delay_seconds == RetryConfig().base_delay_seconds

    def test_from_none(self):
        assert RetryConfig.from_dict(None) == RetryConfig()

    def test_retry_after_seconds(self):
        client = _client(StubSession())
        assert client._retry_after(StubResponse(429, headers={"Retry-After": "7"})) == 7.0
        assert client._retry_after(StubResponse(429)) is None
        assert client._retry_after(StubResponse(429, headers={"Retry-After": "soon"})) is None
