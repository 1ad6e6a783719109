# invokers.py
# Tool invocation boundary: how the engine actually calls a tool.
# The engine only knows the ToolInvoker protocol; swap the invoker to go
# from canned mock payloads to real local callables (or an RPC client).

import copy
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Protocol

from workflow_orchestrator import config
from workflow_orchestrator.cancellation import CancelToken
from workflow_orchestrator.errors import CancelledError, ToolFailureError

_POLL_INTERVAL = 0.05


class ToolInvoker(Protocol):
    def invoke(
        self,
        tool_id: str,
        request: dict,
        context: Any,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Run one tool and return its JSON response. Raises ToolFailureError."""


# ---------------------------------------------------------------------------
# Mock invoker
# ---------------------------------------------------------------------------


def _mock_log(request: dict) -> dict:
    return {
        "logged": True,
        "timestamp": time.strftime("%H:%M:%S"),
        "keys": list(request.get("context_keys", [])),
    }


MOCK_RESPONSES: dict[str, Any] = {
    "matrix.add": {"result": [[2, 4], [6, 8]], "message": "Matrices added successfully (Mock)"},
    "matrix.mul": {"result": [[19, 22], [43, 50]], "message": "Matrices multiplied successfully (Mock)"},
    "matrix.inv": {"result": [[-2, 1], [1.5, -0.5]], "message": "Matrix inversion calculated (Mock)"},
    "data.normalize": {"result": [0, 0.25, 0.5, 0.75, 1.0], "message": "Data normalized using MinMax"},
    "poly.fit": {"coefficients": [1.2, 0.5, 0.01], "degree": 2, "r_squared": 0.98},
    "poly.evaluate": {"x": 5, "y": 25.5, "message": "Polynomial evaluated at x=5"},
    "error.metrics": {"mse": 0.04, "mae": 0.15, "message": "Error metrics calculated"},
    "utils.log": _mock_log,
}


class MockToolInvoker:
    """
    Returns fixed payloads by tool id after an artificial delay.

    The delay models asynchronous work: it is interrupted by a cancel token
    and bounded by the per-step timeout (a delay longer than the timeout is
    reported as a ToolFailureError).
    """

    def __init__(self, delay: float = config.MOCK_DELAY, responses: dict[str, Any] | None = None) -> None:
        self._delay = delay
        self._responses = MOCK_RESPONSES if responses is None else responses

    def invoke(self, tool_id, request, context, cancel=None, timeout=None):
        token = cancel or CancelToken()
        wait_for = self._delay if timeout is None else min(self._delay, timeout)

        if wait_for > 0 and token.wait(wait_for):
            raise CancelledError(f"Invocation of {tool_id!r} cancelled.")
        if timeout is not None and self._delay > timeout:
            raise ToolFailureError(f"Tool {tool_id!r} timed out after {timeout}s.")

        canned = self._responses.get(tool_id)
        if canned is None:
            return {
                "output": "Mock data generated",
                "status": "OK",
                "warning": f"Tool {tool_id} implementation not found",
            }
        if callable(canned):
            return canned(request)
        return copy.deepcopy(canned)


# ---------------------------------------------------------------------------
# Callable invoker
# ---------------------------------------------------------------------------


class CallableToolInvoker:
    """
    Dispatches to plain Python callables: fn(request, context) -> response.

    Each call runs on a worker thread so it can be abandoned on timeout or
    cancellation. Any exception raised by the callable becomes a
    ToolFailureError carrying the original message.
    """

    def __init__(self, functions: dict[str, Callable[[dict, Any], Any]], max_workers: int = 4) -> None:
        self._functions = dict(functions)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tool")

    def invoke(self, tool_id, request, context, cancel=None, timeout=None):
        fn = self._functions.get(tool_id)
        if fn is None:
            raise ToolFailureError(f"No implementation registered for tool {tool_id!r}.")

        future = self._executor.submit(fn, request, context)
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            slice_ = _POLL_INTERVAL
            if deadline is not None:
                slice_ = max(0.0, min(slice_, deadline - time.monotonic()))
            done, _ = wait([future], timeout=slice_)
            if done:
                break
            if cancel is not None and cancel.cancelled:
                future.cancel()
                raise CancelledError(f"Invocation of {tool_id!r} cancelled.")
            if deadline is not None and time.monotonic() >= deadline:
                future.cancel()
                raise ToolFailureError(f"Tool {tool_id!r} timed out after {timeout}s.")

        try:
            return future.result()
        except ToolFailureError:
            raise
        except Exception as exc:
            raise ToolFailureError(f"Tool {tool_id!r} failed: {exc}") from exc

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
