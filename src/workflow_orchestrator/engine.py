# engine.py
# Step execution engine.
#
# Runs a snapshot of the pipeline strictly in order against one shared JSON
# context. Each completed step yields a LogEntry; the accumulated log is
# published after every step so a caller can render progress live.
#
# Control flow per step:
#   cancel check → resolve tool id (skip if unknown) → build request
#   → invoke (timeout-bound) → LogEntry (success | error) → publish
#
# All terminal output is delegated to display.py, no formatting here.

import json
import threading
import time
import weakref
from typing import Any, Callable, Iterable

from workflow_orchestrator import config, display
from workflow_orchestrator.cancellation import CancelToken
from workflow_orchestrator.errors import BusyError, CancelledError, InvalidInputError, ToolFailureError
from workflow_orchestrator.invokers import MockToolInvoker, ToolInvoker
from workflow_orchestrator.models import LogEntry, RunState, Step
from workflow_orchestrator.registry import ToolRegistry

ProgressCallback = Callable[[list[LogEntry]], None]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_context(initial_context_json: str) -> Any:
    """Parse the seed context. Raises InvalidInputError on malformed JSON."""
    try:
        return json.loads(initial_context_json)
    except (TypeError, json.JSONDecodeError) as exc:
        raise InvalidInputError(f"Seed context is not valid JSON: {exc}") from exc


def build_request(tool_id: str, step_index: int, context: Any) -> dict:
    keys = list(context) if isinstance(context, dict) else []
    return {"tool": tool_id, "step_index": step_index, "context_keys": keys}


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Run handle
# ---------------------------------------------------------------------------


class Run:
    """
    Lazy, finite, non-restartable iterator over the LogEntries of one run.

    Iterating drives execution: each next() runs steps until one produces
    an entry. `log` is the accumulated entries so far. The engine's
    single-run guard is released when iteration ends, when close() is called,
    or when an abandoned handle is garbage collected.
    """

    def __init__(
        self,
        engine: "ExecutionEngine",
        steps: list[Step],
        context: Any,
        cancel: CancelToken,
        on_progress: ProgressCallback | None,
    ) -> None:
        self._engine = engine
        self._steps = steps
        self._context = context
        self._cancel = cancel
        self._on_progress = on_progress
        self._log: list[LogEntry] = []
        self._finalizer = weakref.finalize(self, engine._release)
        self.state = RunState.PENDING
        self._iter = self._execute()

    def __iter__(self):
        return self

    def __next__(self) -> LogEntry:
        return next(self._iter)

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def log(self) -> list[LogEntry]:
        return list(self._log)

    @property
    def context(self) -> Any:
        return self._context

    @property
    def done(self) -> bool:
        return self.state in (RunState.COMPLETED, RunState.CANCELLED)

    def cancel(self) -> None:
        self._cancel.cancel()

    def execute(self) -> list[LogEntry]:
        """Drain the run and return the final log."""
        for _ in self:
            pass
        return self.log

    def close(self) -> None:
        self._iter.close()
        if not self.done:
            self.state = RunState.CANCELLED
        self._release()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release(self) -> None:
        # finalize runs its callback at most once
        self._finalizer()

    def _execute(self):
        total = len(self._steps)
        self.state = RunState.RUNNING
        display.run_start(total)
        try:
            for index, step in enumerate(self._steps, start=1):
                if self._cancel.cancelled:
                    self.state = RunState.CANCELLED
                    break

                definition = self._engine.registry.get(step.tool_id)
                if definition is None:
                    display.step_skipped(index, step)
                    continue

                try:
                    entry = self._engine._execute_step(index, step, definition.name, self)
                except CancelledError:
                    self.state = RunState.CANCELLED
                    break

                self._log.append(entry)
                display.step_logged(entry)
                if self._on_progress is not None:
                    self._on_progress(self.log)
                yield entry
            else:
                self.state = RunState.COMPLETED
            display.run_finished(self.state, self._log)
        finally:
            self._release()


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ExecutionEngine:
    """
    Runs pipelines sequentially. One run may be in flight per engine.

    Example:
        engine = ExecutionEngine(ToolRegistry(), MockToolInvoker())
        for entry in engine.run(store, '{"a": 1}'):
            print(entry.step_index, entry.status)
    """

    def __init__(
        self,
        registry: ToolRegistry,
        invoker: ToolInvoker | None = None,
        step_timeout: float | None = config.STEP_TIMEOUT,
    ) -> None:
        self.registry = registry
        self.invoker = invoker or MockToolInvoker()
        self.step_timeout = step_timeout
        self._guard = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._guard.locked()

    def run(
        self,
        pipeline: Iterable[Step],
        initial_context_json: str,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> Run:
        """
        Start a run over a snapshot of `pipeline`.

        Raises InvalidInputError before any step if the seed is not JSON,
        and BusyError if another run on this engine has not finished. The
        guard is held until the returned Run is drained, closed or dropped.
        """
        context = parse_context(initial_context_json)
        steps = list(pipeline)

        if not self._guard.acquire(blocking=False):
            raise BusyError("A run is already in progress.")
        return Run(self, steps, context, cancel or CancelToken(), on_progress)

    def _release(self) -> None:
        self._guard.release()

    def _execute_step(self, index: int, step: Step, name: str, run: Run) -> LogEntry:
        request = build_request(step.tool_id, index, run._context)
        try:
            response = self.invoker.invoke(
                step.tool_id,
                request,
                run._context,
                cancel=run._cancel,
                timeout=self.step_timeout,
            )
            status = "success"
        except ToolFailureError as exc:
            response = {"error": str(exc) or "Execution Failed"}
            status = "error"

        if status == "success":
            run._context = _apply_patch(run._context, response)

        return LogEntry(
            step_index=index,
            step_name=name,
            tool_id=step.tool_id,
            request=request,
            response=response,
            status=status,
            timestamp=_now_ms(),
        )


def _apply_patch(context: Any, response: Any) -> Any:
    """Shallow-merge a tool's `context_patch` into an object context."""
    if not (isinstance(context, dict) and isinstance(response, dict)):
        return context
    patch = response.get("context_patch")
    if not isinstance(patch, dict):
        return context
    return {**context, **patch}
