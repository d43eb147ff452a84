"""Adapter: HttpBackend implements BackendPort over a REST evaluation service.

Models are deployed once per backend instance by POSTing the base64-encoded
model file to the deploy endpoint, tagged with the model file name. Each
evaluation target is then evaluated by POSTing the tag, artifact kind,
artifact name and encoded inputs to the evaluate endpoint.

Both endpoints answer with a ``{"data": ..., "errors": [...]}`` envelope.
"""

from __future__ import annotations

import base64
import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests

from domain.errors import (
    EvaluationFailure,
    InvocationError,
    InvocationTimeout,
    ModelLoadFailure,
    UnsupportedFeature,
)
from modules.wire.core import Envelope, decode_value, encode_inputs, unwrap_envelope

if TYPE_CHECKING:
    from domain.models import EvaluationTarget, ModelHandle
    from domain.values import Value

logger = logging.getLogger("dmntck.adapters")

_UNSUPPORTED_MARKERS = ("not supported", "unsupported", "not implemented")


def classify_service_error(details: str) -> InvocationError:
    """Map an evaluation error reported by the service onto the error taxonomy."""
    lowered = details.lower()
    if any(marker in lowered for marker in _UNSUPPORTED_MARKERS):
        return UnsupportedFeature(details)
    return EvaluationFailure(details)


class HttpBackend:
    """Concrete implementation of BackendPort using ``requests``."""

    def __init__(
        self,
        deploy_url: str,
        evaluate_url: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialise with the service endpoints.

        Args:
            deploy_url: Endpoint receiving model deployments.
            evaluate_url: Endpoint evaluating decision artifacts.
            timeout: Socket timeout in seconds for every request.
            session: Session to reuse; a new one is created when omitted.
        """
        self._deploy_url = deploy_url
        self._evaluate_url = evaluate_url
        self._timeout = timeout
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()
        self._lock = threading.Lock()
        self._model_locks: dict[str, threading.Lock] = {}
        self._deployed: set[str] = set()
        self._rejected: dict[str, str] = {}

    # ── Transport ──────────────────────────────────────────────────

    def _post(
        self,
        url: str,
        payload: dict[str, Any],
        failure: type[InvocationError],
    ) -> Envelope:
        try:
            response = self._session.post(url, json=payload, timeout=self._timeout)
        except requests.Timeout as exc:
            msg = f"{url}: {exc}"
            raise InvocationTimeout(msg) from exc
        except requests.RequestException as exc:
            msg = f"{url}: {exc}"
            raise failure(msg) from exc

        try:
            body = response.json()
        except ValueError:
            body = None
        if body is None:
            if response.ok:
                msg = f"{url}: response is not JSON"
            else:
                msg = f"{url}: HTTP {response.status_code} {response.text[:200]}"
            raise failure(msg)

        try:
            envelope = unwrap_envelope(body)
        except ValueError as exc:
            msg = f"{url}: HTTP {response.status_code}: {exc}"
            raise failure(msg) from exc
        return envelope

    # ── Deployment ─────────────────────────────────────────────────

    def deploy(self, model: ModelHandle) -> None:
        """Deploy ``model`` unless it already is.

        Only cases of the same model wait for its deployment. A model the
        service rejected is not sent again; transport failures are retried
        by the next case.

        Raises:
            ModelLoadFailure: the model file cannot be read, the service
                cannot be reached or it rejects the model.
            InvocationTimeout: the service did not answer in time.
        """
        with self._lock:
            model_lock = self._model_locks.setdefault(model.name, threading.Lock())
        with model_lock:
            if model.name in self._deployed:
                return
            if model.name in self._rejected:
                raise ModelLoadFailure(self._rejected[model.name])
            self._deploy(model)
            self._deployed.add(model.name)

    def _deploy(self, model: ModelHandle) -> None:
        if model.path is None:
            msg = f"model file not found: {model.name}"
            raise ModelLoadFailure(msg)
        path = Path(model.path).resolve()
        try:
            content = path.read_bytes()
        except OSError as exc:
            msg = f"reading model failed: {exc}"
            raise ModelLoadFailure(msg) from exc
        payload = {
            "source": path.as_uri(),
            "content": base64.b64encode(content).decode("ascii"),
            "tag": model.name,
        }
        logger.info("Deploying %s", path)
        envelope = self._post(self._deploy_url, payload, ModelLoadFailure)
        if envelope.failed:
            self._rejected[model.name] = envelope.error_text
            raise ModelLoadFailure(envelope.error_text)
        data = envelope.data if isinstance(envelope.data, Mapping) else {}
        logger.info(
            "Deployed %s (name=%s, id=%s)",
            model.name,
            data.get("name", "(no value)"),
            data.get("id", "(no value)"),
        )

    # ── BackendPort ────────────────────────────────────────────────

    def invoke(
        self,
        model: ModelHandle,
        inputs: Mapping[str, Value],
        *,
        targets: tuple[EvaluationTarget, ...] = (),
    ) -> Mapping[str, Value]:
        """Deploy the model if needed and evaluate every target."""
        if not targets:
            msg = "the evaluation service needs named targets"
            raise UnsupportedFeature(msg)
        self.deploy(model)
        encoded_inputs = encode_inputs(inputs)
        actual: dict[str, Value] = {}
        for target in targets:
            payload = {
                "tag": model.name,
                "artifact": target.artifact,
                "name": target.name,
                "input": encoded_inputs,
            }
            logger.debug("Evaluating %s '%s' of %s", target.artifact, target.name, model.name)
            envelope = self._post(self._evaluate_url, payload, EvaluationFailure)
            if envelope.failed:
                raise classify_service_error(envelope.error_text)
            actual[target.name] = self._decode_result(envelope.data, target)
        return actual

    def _decode_result(self, data: object, target: EvaluationTarget) -> Value:
        if not isinstance(data, Mapping):
            msg = f"result for '{target.name}' is not an object"
            raise EvaluationFailure(msg)
        try:
            return decode_value(data.get("value"))
        except ValueError as exc:
            msg = f"malformed value for '{target.name}': {exc}"
            raise EvaluationFailure(msg) from exc

    def close(self) -> None:
        """Close the HTTP session if this backend created it."""
        if self._owns_session:
            self._session.close()
