"""Adapter: CallableBackend implements BackendPort around a Python callable.

Lets an engine written in Python plug in without a service in between.
The callable receives ``(model, inputs, targets)`` and returns a mapping of
output names to Values or plain Python values.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from domain.errors import (
    EvaluationFailure,
    InvocationError,
    InvocationTimeout,
    ModelLoadFailure,
    UnsupportedFeature,
)
from domain.values import Value

if TYPE_CHECKING:
    from collections.abc import Callable

    from domain.models import EvaluationTarget, ModelHandle

    EngineFunc = Callable[
        [ModelHandle, Mapping[str, Value], tuple[EvaluationTarget, ...]],
        Mapping[str, Any],
    ]

logger = logging.getLogger("dmntck.adapters")


class CallableBackend:
    """Concrete implementation of BackendPort for in-process engines.

    Exceptions raised by the callable are mapped onto the invocation error
    taxonomy: NotImplementedError is an unsupported feature,
    FileNotFoundError a model load failure, TimeoutError a timeout and
    anything else an evaluation failure.
    """

    def __init__(self, func: EngineFunc) -> None:
        self._func = func

    def invoke(
        self,
        model: ModelHandle,
        inputs: Mapping[str, Value],
        *,
        targets: tuple[EvaluationTarget, ...] = (),
    ) -> Mapping[str, Value]:
        """Call the engine and convert its outputs to Values."""
        try:
            raw = self._func(model, inputs, targets)
        except InvocationError:
            raise
        except NotImplementedError as exc:
            raise UnsupportedFeature(str(exc) or "not implemented") from exc
        except FileNotFoundError as exc:
            raise ModelLoadFailure(str(exc)) from exc
        except TimeoutError as exc:
            raise InvocationTimeout(str(exc) or "engine timed out") from exc
        except Exception as exc:
            logger.debug("Engine raised on %s", model.name, exc_info=True)
            msg = f"{type(exc).__name__}: {exc}"
            raise EvaluationFailure(msg) from exc

        if not isinstance(raw, Mapping):
            msg = f"engine returned {type(raw).__name__}, expected a mapping"
            raise EvaluationFailure(msg)
        try:
            return {str(name): Value.of(value) for name, value in raw.items()}
        except (TypeError, ValueError) as exc:
            msg = f"engine output is not a DMN value: {exc}"
            raise EvaluationFailure(msg) from exc
