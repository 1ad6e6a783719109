# errors.py
# Error taxonomy shared by the store, the engine and the bridge.
#
# Every exception carries an ErrorKind so callers at a boundary can report
# the failure without matching on class names.

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "InvalidInput"
    INVALID_ARGUMENT = "InvalidArgument"
    TOOL_FAILURE = "ToolFailure"
    PROTOCOL_LOOP_EXCEEDED = "ProtocolLoopExceeded"
    AGENT_UNAVAILABLE = "AgentUnavailable"
    BUSY = "Busy"
    CANCELLED = "Cancelled"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class OrchestratorError(Exception):
    kind: ErrorKind


class InvalidInputError(OrchestratorError):
    """Raised when the seed context is not valid JSON. The run never starts."""

    kind = ErrorKind.INVALID_INPUT


class InvalidArgumentError(OrchestratorError):
    """Raised when a pipeline mutation is rejected. State is left untouched."""

    kind = ErrorKind.INVALID_ARGUMENT


class ToolFailureError(OrchestratorError):
    """Raised by an invoker when a single tool invocation fails or times out."""

    kind = ErrorKind.TOOL_FAILURE


class ProtocolLoopExceededError(OrchestratorError):
    """Raised when the agent keeps requesting calls past the round limit."""

    kind = ErrorKind.PROTOCOL_LOOP_EXCEEDED


class AgentUnavailableError(OrchestratorError):
    """Raised on transport or authentication failures talking to the agent."""

    kind = ErrorKind.AGENT_UNAVAILABLE


class BusyError(OrchestratorError):
    """Raised when a run or a turn is started while another is in flight."""

    kind = ErrorKind.BUSY


class CancelledError(OrchestratorError):
    kind = ErrorKind.CANCELLED
