"""Tests for the HttpBackend adapter.

A fake session stands in for ``requests.Session``, so no network is used.
"""

from __future__ import annotations

import base64
import threading
from typing import TYPE_CHECKING, Any

import pytest
import requests

from adapters.http_backend import HttpBackend, classify_service_error
from domain.errors import (
    EvaluationFailure,
    InvocationTimeout,
    ModelLoadFailure,
    UnsupportedFeature,
)
from domain.models import EvaluationTarget, ModelHandle
from domain.values import Value

if TYPE_CHECKING:
    from pathlib import Path

DEPLOY_URL = "http://localhost:22022/api/v1/deploy"
EVALUATE_URL = "http://localhost:22022/api/v1/evaluate"

_NOT_JSON = object()


class FakeResponse:
    def __init__(self, body: Any, status_code: int = 200, text: str = "") -> None:
        self._body = body
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = text

    def json(self) -> Any:
        if self._body is _NOT_JSON:
            msg = "Expecting value"
            raise ValueError(msg)
        return self._body


class FakeSession:
    """Replays queued responses per URL and records every request."""

    def __init__(self, responses: dict[str, list[Any]]) -> None:
        self._responses = responses
        self.requests: list[tuple[str, dict[str, Any], float]] = []
        self.closed = False

    def post(self, url: str, *, json: dict[str, Any], timeout: float) -> FakeResponse:
        self.requests.append((url, json, timeout))
        queue = self._responses[url]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


def _value_ok(text: str) -> FakeResponse:
    return FakeResponse({"data": {"value": {"simple": {"type": "xsd:string", "text": text, "isNil": False}}}})


@pytest.fixture
def model(tmp_path: Path) -> ModelHandle:
    path = tmp_path / "0001-input-data-string.dmn"
    path.write_text("<definitions/>", encoding="utf-8")
    return ModelHandle(name=path.name, path=str(path))


TARGET = (EvaluationTarget("Greeting Message", "decision"),)
INPUTS = {"Full Name": Value.string("John Doe")}


def _backend(responses: dict[str, list[Any]]) -> tuple[HttpBackend, FakeSession]:
    session = FakeSession(responses)
    return HttpBackend(DEPLOY_URL, EVALUATE_URL, timeout=5.0, session=session), session  # type: ignore[arg-type]


# ── Deployment ──────────────────────────────────────────────────────────


def test_deploys_once_then_evaluates(model: ModelHandle) -> None:
    backend, session = _backend(
        {
            DEPLOY_URL: [FakeResponse({"data": {"name": "m", "id": "1", "tag": model.name}})],
            EVALUATE_URL: [_value_ok("Hello John Doe")],
        }
    )
    first = backend.invoke(model, INPUTS, targets=TARGET)
    backend.invoke(model, INPUTS, targets=TARGET)

    assert first == {"Greeting Message": Value.string("Hello John Doe")}
    urls = [url for url, _, _ in session.requests]
    assert urls == [DEPLOY_URL, EVALUATE_URL, EVALUATE_URL]


def test_deploy_payload(model: ModelHandle) -> None:
    backend, session = _backend(
        {DEPLOY_URL: [FakeResponse({"data": {}})], EVALUATE_URL: [_value_ok("x")]}
    )
    backend.invoke(model, INPUTS, targets=TARGET)
    _, payload, timeout = session.requests[0]
    assert payload["tag"] == model.name
    assert payload["source"].startswith("file://")
    assert base64.b64decode(payload["content"]) == b"<definitions/>"
    assert timeout == 5.0


def test_evaluate_payload(model: ModelHandle) -> None:
    backend, session = _backend(
        {DEPLOY_URL: [FakeResponse({"data": {}})], EVALUATE_URL: [_value_ok("x")]}
    )
    backend.invoke(model, INPUTS, targets=(EvaluationTarget("fn", "bkm", "fn"),))
    _, payload, _ = session.requests[1]
    assert payload == {
        "tag": model.name,
        "artifact": "bkm",
        "name": "fn",
        "input": [
            {
                "name": "Full Name",
                "value": {"simple": {"type": "xsd:string", "text": "John Doe", "isNil": False}},
            }
        ],
    }


def test_deploy_errors_are_model_load_failures_and_cached(model: ModelHandle) -> None:
    backend, session = _backend(
        {DEPLOY_URL: [FakeResponse({"errors": [{"details": "invalid XML"}]})], EVALUATE_URL: []}
    )
    with pytest.raises(ModelLoadFailure, match="invalid XML"):
        backend.invoke(model, INPUTS, targets=TARGET)
    with pytest.raises(ModelLoadFailure, match="invalid XML"):
        backend.invoke(model, INPUTS, targets=TARGET)
    assert len(session.requests) == 1


def test_transport_errors_during_deploy_are_retried(model: ModelHandle) -> None:
    backend, session = _backend(
        {
            DEPLOY_URL: [requests.ConnectionError("refused"), FakeResponse({"data": {}})],
            EVALUATE_URL: [_value_ok("Hello John Doe")],
        }
    )
    with pytest.raises(ModelLoadFailure, match="refused"):
        backend.invoke(model, INPUTS, targets=TARGET)

    result = backend.invoke(model, INPUTS, targets=TARGET)

    assert result == {"Greeting Message": Value.string("Hello John Doe")}
    urls = [url for url, _, _ in session.requests]
    assert urls == [DEPLOY_URL, DEPLOY_URL, EVALUATE_URL]


def test_missing_model_file_is_model_load_failure() -> None:
    backend, session = _backend({DEPLOY_URL: [], EVALUATE_URL: []})
    with pytest.raises(ModelLoadFailure, match="model file not found"):
        backend.invoke(ModelHandle(name="absent.dmn"), INPUTS, targets=TARGET)
    assert session.requests == []


class SlowDeploySession:
    """Holds the deployment of one model until released; everything else answers at once."""

    def __init__(self, slow_tag: str) -> None:
        self._slow_tag = slow_tag
        self.deployed: list[str] = []
        self.slow_started = threading.Event()
        self.slow_finished = threading.Event()
        self.release = threading.Event()

    def post(self, url: str, *, json: dict[str, Any], timeout: float) -> FakeResponse:
        if url == DEPLOY_URL:
            self.deployed.append(json["tag"])
            if json["tag"] == self._slow_tag:
                self.slow_started.set()
                self.release.wait(timeout=5.0)
                self.slow_finished.set()
            return FakeResponse({"data": {}})
        return _value_ok("Hello John Doe")

    def close(self) -> None:
        pass


def _model_file(directory: Path, name: str) -> ModelHandle:
    path = directory / name
    path.write_text("<definitions/>", encoding="utf-8")
    return ModelHandle(name=name, path=str(path))


def test_slow_deploy_does_not_block_other_models(tmp_path: Path) -> None:
    slow, fast = _model_file(tmp_path, "slow.dmn"), _model_file(tmp_path, "fast.dmn")
    session = SlowDeploySession("slow.dmn")
    backend = HttpBackend(DEPLOY_URL, EVALUATE_URL, session=session)  # type: ignore[arg-type]
    slow_results: list[Any] = []

    def evaluate_slow() -> None:
        slow_results.append(backend.invoke(slow, INPUTS, targets=TARGET))

    workers = [threading.Thread(target=evaluate_slow) for _ in range(2)]
    workers[0].start()
    assert session.slow_started.wait(timeout=5.0)
    workers[1].start()

    fast_result = backend.invoke(fast, INPUTS, targets=TARGET)
    finished_before_slow_deploy = not session.slow_finished.is_set()
    session.release.set()
    for worker in workers:
        worker.join(timeout=5.0)

    assert finished_before_slow_deploy
    assert fast_result == {"Greeting Message": Value.string("Hello John Doe")}
    assert slow_results == [fast_result, fast_result]
    assert sorted(session.deployed) == ["fast.dmn", "slow.dmn"]


# ── Evaluation errors ───────────────────────────────────────────────────


def _deployed_backend(model: ModelHandle, evaluate: list[Any]) -> HttpBackend:
    backend, _ = _backend({DEPLOY_URL: [FakeResponse({"data": {}})], EVALUATE_URL: evaluate})
    backend.deploy(model)
    return backend


def test_service_errors_are_evaluation_failures(model: ModelHandle) -> None:
    backend = _deployed_backend(
        model, [FakeResponse({"errors": [{"details": "division by zero"}, {"details": "again"}]})]
    )
    with pytest.raises(EvaluationFailure, match="division by zero, again"):
        backend.invoke(model, INPUTS, targets=TARGET)


def test_unsupported_errors_are_classified(model: ModelHandle) -> None:
    backend = _deployed_backend(
        model, [FakeResponse({"errors": [{"details": "FEEL function 'sort' is not supported"}]})]
    )
    with pytest.raises(UnsupportedFeature):
        backend.invoke(model, INPUTS, targets=TARGET)


def test_timeout_maps_to_invocation_timeout(model: ModelHandle) -> None:
    backend = _deployed_backend(model, [requests.Timeout("read timed out")])
    with pytest.raises(InvocationTimeout, match="read timed out"):
        backend.invoke(model, INPUTS, targets=TARGET)


def test_connection_error_is_evaluation_failure(model: ModelHandle) -> None:
    backend = _deployed_backend(model, [requests.ConnectionError("refused")])
    with pytest.raises(EvaluationFailure, match="refused"):
        backend.invoke(model, INPUTS, targets=TARGET)


def test_http_error_without_json(model: ModelHandle) -> None:
    backend = _deployed_backend(model, [FakeResponse(_NOT_JSON, status_code=500, text="Internal")])
    with pytest.raises(EvaluationFailure, match="HTTP 500 Internal"):
        backend.invoke(model, INPUTS, targets=TARGET)


def test_malformed_value_is_evaluation_failure(model: ModelHandle) -> None:
    backend = _deployed_backend(model, [FakeResponse({"data": {"value": {"bogus": 1}}})])
    with pytest.raises(EvaluationFailure, match="malformed value"):
        backend.invoke(model, INPUTS, targets=TARGET)


def test_missing_value_decodes_as_null(model: ModelHandle) -> None:
    backend = _deployed_backend(model, [FakeResponse({"data": {"value": None}})])
    assert backend.invoke(model, INPUTS, targets=TARGET)["Greeting Message"].is_null


def test_empty_targets_unsupported(model: ModelHandle) -> None:
    backend, _ = _backend({DEPLOY_URL: [], EVALUATE_URL: []})
    with pytest.raises(UnsupportedFeature):
        backend.invoke(model, INPUTS)


def test_classify_service_error() -> None:
    assert isinstance(classify_service_error("Not Implemented: for"), UnsupportedFeature)
    assert isinstance(classify_service_error("null pointer"), EvaluationFailure)


def test_close_leaves_injected_session_open(model: ModelHandle) -> None:
    backend, session = _backend({DEPLOY_URL: [], EVALUATE_URL: []})
    backend.close()
    assert not session.closed
