import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from openai import OpenAIError

from workflow_orchestrator import agent as agent_module
from workflow_orchestrator.agent import OpenAIAgent, build_capabilities, build_system_prompt, get_client
from workflow_orchestrator.errors import AgentUnavailableError, ErrorKind
from workflow_orchestrator.models import CallResult, ChatMessage
from workflow_orchestrator.registry import ToolRegistry


def _response(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(arguments, call_id="call_1", name="add_or_reset_step"):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def _agent(*responses):
    client = MagicMock()
    client.chat.completions.create.side_effect = list(responses)
    return OpenAIAgent("system prompt", model="test-model", client=client), client


CAPABILITIES = build_capabilities(ToolRegistry())


# ---------------------------------------------------------------------------
# Prompt and schema
# ---------------------------------------------------------------------------

def test_system_prompt_lists_valid_ids():
    prompt = build_system_prompt(ToolRegistry())
    assert "'matrix.add'" in prompt
    assert "add_or_reset_step" in prompt


def test_capability_serializes_as_openai_function():
    tool = CAPABILITIES[0].to_openai()
    assert tool["type"] == "function"
    assert tool["function"]["name"] == "add_or_reset_step"
    assert tool["function"]["parameters"]["properties"]["reset"]["type"] == "boolean"


# ---------------------------------------------------------------------------
# Exchange
# ---------------------------------------------------------------------------

def test_send_maps_roles_and_parses_calls():
    agent, client = _agent(_response(tool_calls=[_tool_call('{"tool_id": "matrix.add", "reset": false}')]))
    history = [
        ChatMessage(role="model", content="Welcome"),
        ChatMessage(role="user", content="add matrix addition"),
    ]

    reply = agent.send(history, CAPABILITIES)

    assert reply.text == ""
    assert reply.calls[0].name == "add_or_reset_step"
    assert reply.calls[0].args == {"tool_id": "matrix.add", "reset": False}
    assert reply.calls[0].call_id == "call_1"

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert [m["role"] for m in kwargs["messages"][:3]] == ["system", "assistant", "user"]
    assert kwargs["tools"][0]["function"]["name"] == "add_or_reset_step"


def test_follow_up_relays_results_by_call_id():
    agent, client = _agent(
        _response(tool_calls=[_tool_call('{"tool_id": "matrix.add"}', call_id="abc")]),
        _response(content="  Added it.  "),
    )
    agent.send([ChatMessage(role="user", content="add")], CAPABILITIES)

    reply = agent.send_follow_up([CallResult(name="add_or_reset_step", call_id="abc", ok=True, message="Added")])

    assert reply.text == "Added it."
    assert reply.calls == []
    messages = client.chat.completions.create.call_args.kwargs["messages"]
    assistant = next(m for m in messages if m["role"] == "assistant")
    assert assistant["tool_calls"][0]["id"] == "abc"
    tool_message = next(m for m in messages if m["role"] == "tool")
    assert tool_message["tool_call_id"] == "abc"
    assert json.loads(tool_message["content"]) == {"result": {"ok": True, "message": "Added"}}


def test_malformed_arguments_are_passed_through_raw():
    agent, _ = _agent(_response(tool_calls=[_tool_call("{tool_id: matrix.add")]))
    reply = agent.send([ChatMessage(role="user", content="add")], CAPABILITIES)
    assert reply.calls[0].args == "{tool_id: matrix.add"


def test_follow_up_before_send_is_an_error():
    agent, _ = _agent()
    with pytest.raises(RuntimeError):
        agent.send_follow_up([])


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_transport_errors_become_agent_unavailable():
    agent, _ = _agent(OpenAIError("connection refused"))

    with pytest.raises(AgentUnavailableError) as info:
        agent.send([ChatMessage(role="user", content="hi")], CAPABILITIES)

    assert info.value.kind is ErrorKind.AGENT_UNAVAILABLE
    assert isinstance(info.value.__cause__, OpenAIError)


def test_empty_choices_become_agent_unavailable():
    agent, _ = _agent(SimpleNamespace(choices=[]))
    with pytest.raises(AgentUnavailableError):
        agent.send([ChatMessage(role="user", content="hi")], CAPABILITIES)


# ---------------------------------------------------------------------------
# Shared client
# ---------------------------------------------------------------------------

@patch("workflow_orchestrator.agent.OpenAI")
def test_client_is_created_once_on_first_use(mock_openai, monkeypatch):
    monkeypatch.setattr(agent_module, "_client", None)

    first = get_client()
    second = get_client()

    assert first is second
    mock_openai.assert_called_once()


@patch("workflow_orchestrator.agent.OpenAI")
def test_agent_without_client_uses_shared_client(mock_openai, monkeypatch):
    monkeypatch.setattr(agent_module, "_client", None)
    mock_openai.return_value.chat.completions.create.return_value = _response(content="hi")

    reply = OpenAIAgent("prompt").send([ChatMessage(role="user", content="hi")], CAPABILITIES)

    assert reply.text == "hi"
    mock_openai.assert_called_once()
