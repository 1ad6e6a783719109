# models.py
# Data contracts for the workflow orchestrator.
# No business logic lives here, only schema and validation.

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Tools and pipeline
# ---------------------------------------------------------------------------


class ToolDefinition(BaseModel):
    """Static metadata for one registered tool."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique, stable tool id, e.g. 'matrix.add'.")
    name: str = Field(..., description="Human-readable tool name.")
    description: str = Field(default="", description="What the tool does.")
    category: Literal["math", "data", "analysis", "utility"]


class Step(BaseModel):
    """One entry of a pipeline. The tool id is not checked against the registry."""

    model_config = ConfigDict(frozen=True)

    instance_id: str = Field(..., description="UUID, unique within the pipeline.")
    tool_id: str = Field(..., description="Registry id of the tool to invoke.")


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LogEntry(BaseModel):
    """Immutable record produced after each executed step."""

    model_config = ConfigDict(frozen=True)

    step_index: int = Field(..., description="1-based position of the step in the pipeline.")
    step_name: str
    tool_id: str
    request: Any = Field(default=None, description="Payload sent to the tool.")
    response: Any = Field(default=None, description="Payload returned by the tool.")
    status: Literal["success", "error"]
    timestamp: int = Field(..., description="Completion time, ms since the epoch.")


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model", "system"]
    content: str


class FunctionSchema(BaseModel):
    """A capability declared to the agent in function-calling form."""

    name: str
    description: str
    parameters: dict = Field(default_factory=dict, description="JSON Schema of the arguments.")

    def to_openai(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class FunctionCall(BaseModel):
    """A structured call request extracted from an agent reply."""

    name: str
    args: Any = Field(default_factory=dict)
    call_id: str | None = None


class CallResult(BaseModel):
    """Outcome of applying one FunctionCall, relayed back to the agent."""

    name: str
    call_id: str | None = None
    ok: bool
    message: str

    def payload(self) -> dict:
        return {"ok": self.ok, "message": self.message}


class AgentReply(BaseModel):
    text: str = ""
    calls: list[FunctionCall] = Field(default_factory=list)


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_AGENT_REPLY = "awaiting_agent_reply"
    PROCESSING_TOOL_CALLS = "processing_tool_calls"


class ConversationTurn(BaseModel):
    """Everything that happened between one user utterance and its final reply."""

    utterance: str
    replies: list[AgentReply] = Field(default_factory=list)
    results: list[CallResult] = Field(default_factory=list)
    rounds: int = Field(default=0, description="Number of call → reply round trips.")
    reply: str = Field(default="", description="Text shown to the user.")
    error: str | None = Field(default=None, description="ErrorKind value if the turn failed.")

    @property
    def ok(self) -> bool:
        return self.error is None
