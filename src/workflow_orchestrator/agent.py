# agent.py
# Reasoning-agent boundary.
#
# The bridge talks to the agent only through the AgentClient protocol:
#   send(history, capabilities)  → AgentReply
#   send_follow_up(call_results) → AgentReply
#
# OpenAIAgent implements it over any OpenAI-compatible chat completions
# endpoint (OpenRouter by default). The underlying HTTP client is created
# lazily on first use and shared by every agent in the process.

import json
import threading
from typing import Protocol

from openai import OpenAI, OpenAIError

from workflow_orchestrator import config
from workflow_orchestrator.errors import AgentUnavailableError
from workflow_orchestrator.models import AgentReply, CallResult, ChatMessage, FunctionCall, FunctionSchema
from workflow_orchestrator.registry import ToolRegistry

FUNCTION_NAME = "add_or_reset_step"

_ROLES = {"user": "user", "model": "assistant", "system": "system"}


class AgentClient(Protocol):
    def send(self, history: list[ChatMessage], capabilities: list[FunctionSchema]) -> AgentReply: ...

    def send_follow_up(self, call_results: list[CallResult]) -> AgentReply: ...


# ---------------------------------------------------------------------------
# Capabilities and prompt
# ---------------------------------------------------------------------------


def build_capabilities(registry: ToolRegistry) -> list[FunctionSchema]:
    """The single pipeline-editing capability, with tool_id constrained to the registry."""
    ids = registry.ids()
    return [
        FunctionSchema(
            name=FUNCTION_NAME,
            description="Add a tool as a new workflow step, optionally clearing existing steps first.",
            parameters={
                "type": "object",
                "properties": {
                    "tool_id": {
                        "type": "string",
                        "enum": ids,
                        "description": f"The ID of the tool to add. Valid options: {', '.join(ids)}",
                    },
                    "reset": {
                        "type": "boolean",
                        "default": False,
                        "description": "Whether to clear existing steps before adding this one.",
                    },
                },
                "required": ["tool_id"],
            },
        )
    ]


def build_system_prompt(registry: ToolRegistry) -> str:
    valid = ", ".join(f"'{tool_id}'" for tool_id in registry.ids())
    return (
        "You are a workflow assistant for the Workflow Orchestrator.\n"
        "Your goal is to help the user modify their workflow steps using the provided tools.\n"
        'When a user asks to "add matrix addition" or "use data normalization", '
        f"you MUST call the `{FUNCTION_NAME}` function.\n"
        f"The `tool_id` argument must be one of the valid IDs: {valid}.\n"
        "If the user wants to clear the workflow, set `reset` to true.\n"
        "Answer the user in a helpful, concise manner."
    )


# ---------------------------------------------------------------------------
# Shared client
# ---------------------------------------------------------------------------

_client: OpenAI | None = None
_client_lock = threading.Lock()


def get_client() -> OpenAI:
    """Return the process-wide OpenAI client, creating it on first use."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = OpenAI(
                    base_url=config.AGENT_BASE_URL,
                    api_key=config.OPENROUTER_API_KEY or None,
                )
    return _client


def _parse_arguments(raw) -> object:
    """Decode function-call arguments. Undecodable input is returned as-is."""
    if not isinstance(raw, str):
        return raw if raw is not None else {}
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


# ---------------------------------------------------------------------------
# OpenAI-compatible agent
# ---------------------------------------------------------------------------


class OpenAIAgent:
    """
    AgentClient over the chat completions API with tool calling.

    Each send() starts a fresh exchange seeded with the system prompt and the
    full history; send_follow_up() continues that exchange with tool results.
    """

    def __init__(self, system_prompt: str, model: str = config.AGENT_MODEL, client: OpenAI | None = None) -> None:
        self._system_prompt = system_prompt
        self._model = model
        self._client = client
        self._messages: list[dict] = []
        self._tools: list[dict] = []

    @property
    def model(self) -> str:
        return self._model

    def send(self, history, capabilities):
        self._messages = [{"role": "system", "content": self._system_prompt}]
        self._messages.extend({"role": _ROLES[m.role], "content": m.content} for m in history)
        self._tools = [schema.to_openai() for schema in capabilities]
        return self._complete()

    def send_follow_up(self, call_results):
        if not self._messages:
            raise RuntimeError("send_follow_up() called before send().")
        for result in call_results:
            self._messages.append(
                {
                    "role": "tool",
                    "tool_call_id": result.call_id or "",
                    "content": json.dumps({"result": result.payload()}),
                }
            )
        return self._complete()

    def _complete(self) -> AgentReply:
        kwargs = {"model": self._model, "messages": self._messages}
        if self._tools:
            kwargs["tools"] = self._tools

        try:
            client = self._client or get_client()
            response = client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            raise AgentUnavailableError(f"Agent request failed: {exc}") from exc

        if not response.choices:
            raise AgentUnavailableError("Agent returned no choices.")
        message = response.choices[0].message
        tool_calls = message.tool_calls or []

        assistant: dict = {"role": "assistant", "content": message.content or ""}
        if tool_calls:
            assistant["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.function.name, "arguments": tc.function.arguments},
                }
                for tc in tool_calls
            ]
        self._messages.append(assistant)

        calls = [
            FunctionCall(
                name=tc.function.name,
                args=_parse_arguments(tc.function.arguments),
                call_id=tc.id,
            )
            for tc in tool_calls
        ]
        return AgentReply(text=(message.content or "").strip(), calls=calls)
