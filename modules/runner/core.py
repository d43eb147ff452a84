"""Runner module — drives test cases through a backend and classifies them.

For each case the coordinator invokes the backend once, compares every
expected output against the actual mapping and produces an Outcome:

- Success: every expected output compares equal, or the case expects an
  evaluation error and the backend raised one;
- Failure: at least one output differs, or an expected error did not occur;
- Other: the backend could not evaluate the case (load failure, runtime
  error, unsupported construct, timeout).

Cases run on a bounded thread pool. Errors local to a case never abort the
run; the shared RunSummary is the only state mutated across workers.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from functools import partial
from typing import TYPE_CHECKING, Any

from domain.errors import InvocationError, InvocationErrorKind, InvocationTimeout
from domain.models import Mismatch, Outcome, OutcomeStatus, RunSummary
from modules.comparator.core import compare

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from domain.models import TestCase
    from domain.ports import BackendPort
    from domain.values import Value

logger = logging.getLogger("dmntck.runner")

_NO_ERROR_DETAIL = "expected evaluation error did not occur"


def _call_with_timeout(call: Callable[[], Any], timeout: float) -> Any:
    """Run ``call`` on a daemon thread and give up after ``timeout`` seconds.

    An abandoned call keeps running in the background; its result is dropped.
    """
    result: dict[str, Any] = {}

    def target() -> None:
        try:
            result["value"] = call()
        except Exception as exc:  # re-raised on the calling thread
            result["error"] = exc

    worker = threading.Thread(target=target, name="dmntck-invoke", daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        msg = f"no answer within {timeout:g}s"
        raise InvocationTimeout(msg)
    if "error" in result:
        raise result["error"]
    return result["value"]


class RunCoordinator:
    """Executes test cases against a BackendPort and aggregates outcomes.

    Args:
        backend: The engine under test.
        workers: Maximum number of cases in flight at once.
        timeout: Per-case limit in seconds; None waits indefinitely.
        stop_on_failure: Stop submitting new cases after the first Failure.
    """

    def __init__(
        self,
        backend: BackendPort,
        *,
        workers: int = 1,
        timeout: float | None = None,
        stop_on_failure: bool = False,
    ) -> None:
        if workers < 1:
            msg = f"workers must be at least 1, got {workers}"
            raise ValueError(msg)
        if timeout is not None and timeout <= 0:
            msg = f"timeout must be positive, got {timeout}"
            raise ValueError(msg)
        self._backend = backend
        self._workers = workers
        self._timeout = timeout
        self._stop_on_failure = stop_on_failure

    # ── Single case ──────────────────────────────────────────────

    def _invoke(self, case: TestCase) -> Mapping[str, Value]:
        call = partial(
            self._backend.invoke,
            case.model,
            case.input_mapping(),
            targets=case.targets(),
        )
        if self._timeout is None:
            return call()
        actual: Mapping[str, Value] = _call_with_timeout(call, self._timeout)
        return actual

    def evaluate(self, case: TestCase) -> Outcome:
        """Run one case and classify it. Never raises for backend errors."""
        started = time.perf_counter()

        def outcome(status: OutcomeStatus, **fields: Any) -> Outcome:
            return Outcome(
                case_id=case.case_id,
                status=status,
                source=case.source,
                elapsed=time.perf_counter() - started,
                **fields,
            )

        try:
            actual = self._invoke(case)
        except InvocationError as exc:
            if case.expects_failure and exc.kind is not InvocationErrorKind.TIMEOUT:
                return outcome(OutcomeStatus.SUCCESS, error=exc.kind, detail=exc.message)
            logger.debug("Case %s: %s (%s)", case.case_id, exc.kind.value, exc.message)
            return outcome(OutcomeStatus.OTHER, error=exc.kind, detail=exc.message)
        except Exception as exc:
            logger.exception("Backend violated its contract on case %s", case.case_id)
            return outcome(OutcomeStatus.OTHER, detail=f"{type(exc).__name__}: {exc}")

        if not isinstance(actual, Mapping):
            detail = f"backend returned {type(actual).__name__} instead of a mapping"
            logger.error("Case %s: %s", case.case_id, detail)
            return outcome(OutcomeStatus.OTHER, detail=detail)

        if case.expects_failure:
            return outcome(OutcomeStatus.FAILURE, detail=_NO_ERROR_DETAIL)

        mismatches: list[Mismatch] = []
        for expected in case.expected:
            if expected.name not in actual:
                mismatches.append(Mismatch(expected.name, "no actual value"))
                continue
            result = compare(expected.value, actual[expected.name])
            if not result.equal:
                mismatches.append(Mismatch(expected.name, result.reason))
        if mismatches:
            detail = "; ".join(f"{m.output}: {m.reason}" for m in mismatches)
            return outcome(OutcomeStatus.FAILURE, mismatches=tuple(mismatches), detail=detail)
        return outcome(OutcomeStatus.SUCCESS)

    # ── Many cases ───────────────────────────────────────────────

    def run(
        self,
        cases: Iterable[TestCase],
        *,
        on_outcome: Callable[[Outcome], None] | None = None,
        cancel: threading.Event | None = None,
    ) -> RunSummary:
        """Execute ``cases`` on the worker pool and return the summary.

        At most ``workers`` cases are in flight. Once ``cancel`` is set (or a
        Failure occurs with stop-on-failure enabled) no further cases are
        submitted; cases already in flight finish and are counted.

        Args:
            cases: Cases to execute, consumed lazily.
            on_outcome: Called on the coordinating thread for every outcome.
            cancel: External cancellation signal.
        """
        summary = RunSummary()
        halted = threading.Event()
        remaining = iter(cases)
        exhausted = False
        pending: set[Future[Outcome]] = set()

        def stopped() -> bool:
            return halted.is_set() or (cancel is not None and cancel.is_set())

        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="dmntck-worker"
        ) as pool:
            while True:
                while not exhausted and len(pending) < self._workers and not stopped():
                    case = next(remaining, None)
                    if case is None:
                        exhausted = True
                        break
                    pending.add(pool.submit(self.evaluate, case))
                if not pending:
                    break
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    result = future.result()
                    summary.record(result)
                    if on_outcome is not None:
                        on_outcome(result)
                    if self._stop_on_failure and result.status is OutcomeStatus.FAILURE:
                        if not halted.is_set():
                            logger.warning("Stopping after failure of case %s", result.case_id)
                        halted.set()

        total, success, failure, other = summary.counts()
        if stopped() and not exhausted:
            logger.warning("Run stopped early after %d case(s)", total)
        logger.info(
            "Run finished: total=%d success=%d failure=%d other=%d",
            total,
            success,
            failure,
            other,
        )
        return summary

    def outcomes(self, cases: Iterable[TestCase]) -> OutcomeStream:
        """Return a lazy, restartable stream of outcomes for ``cases``."""
        return OutcomeStream(self, cases)


class OutcomeStream:
    """Evaluates cases one at a time as it is iterated.

    Each iteration starts over from the first case and invokes the backend
    again.
    """

    def __init__(self, coordinator: RunCoordinator, cases: Iterable[TestCase]) -> None:
        self._coordinator = coordinator
        self._cases = tuple(cases)

    def __len__(self) -> int:
        return len(self._cases)

    def __iter__(self) -> Iterator[Outcome]:
        for case in self._cases:
            yield self._coordinator.evaluate(case)
