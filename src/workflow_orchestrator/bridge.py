# bridge.py
# Conversational tool-invocation bridge.
#
# The bridge is the kernel of a chat turn. The agent is a passive responder:
# it can only ask for pipeline edits through the declared capability, and
# the bridge decides whether and how to apply them.
#
# Turn state machine:
#   IDLE → AWAITING_AGENT_REPLY → (PROCESSING_TOOL_CALLS → AWAITING_AGENT_REPLY)* → IDLE
#
# The bridge only ever touches the pipeline store. It never sees the
# execution context or the run log.

import threading

from workflow_orchestrator import config, display
from workflow_orchestrator.agent import FUNCTION_NAME, AgentClient, build_capabilities
from workflow_orchestrator.cancellation import CancelToken
from workflow_orchestrator.errors import (
    AgentUnavailableError,
    BusyError,
    CancelledError,
    InvalidArgumentError,
    ProtocolLoopExceededError,
)
from workflow_orchestrator.models import (
    AgentReply,
    CallResult,
    ChatMessage,
    ConversationTurn,
    FunctionCall,
    TurnState,
)
from workflow_orchestrator.registry import ToolRegistry
from workflow_orchestrator.store import PipelineStore

GENERIC_FAILURE = (
    "I'm sorry, I encountered an error connecting to the AI assistant. "
    "Please check your API key."
)
FALLBACK_CONFIRMATION = "Updated the workflow."


class ConversationBridge:
    """
    Runs one user turn at a time against an external agent.

    Example:
        bridge = ConversationBridge(store, registry, OpenAIAgent(prompt))
        turn = bridge.submit("add matrix addition")
        print(turn.reply)
    """

    def __init__(
        self,
        store: PipelineStore,
        registry: ToolRegistry,
        agent: AgentClient,
        max_rounds: int = config.MAX_TOOL_ROUNDS,
        greeting: str | None = None,
    ) -> None:
        if max_rounds < 0:
            raise ValueError("max_rounds must be >= 0.")
        self._store = store
        self._registry = registry
        self._agent = agent
        self._max_rounds = max_rounds
        self._greeting = greeting
        self._history: list[ChatMessage] = self._initial_history()
        self._state = TurnState.IDLE
        self._guard = threading.Lock()
        self.capabilities = build_capabilities(registry)

    def _initial_history(self) -> list[ChatMessage]:
        if self._greeting:
            return [ChatMessage(role="model", content=self._greeting)]
        return []

    @property
    def history(self) -> list[ChatMessage]:
        return list(self._history)

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._guard.locked()

    def reset_history(self) -> None:
        """Drop the conversation back to its initial greeting."""
        if not self._guard.acquire(blocking=False):
            raise BusyError("Cannot reset history while a turn is in progress.")
        try:
            self._history = self._initial_history()
        finally:
            self._guard.release()

    # ------------------------------------------------------------------
    # Function calls
    # ------------------------------------------------------------------

    def apply_call(self, call: FunctionCall) -> CallResult:
        """
        Validate one call request and apply it to the pipeline store.

        Invalid requests are never applied; they come back as ok=False so
        the agent can see what went wrong.
        """

        def reject(message: str) -> CallResult:
            return CallResult(name=call.name, call_id=call.call_id, ok=False, message=message)

        if call.name != FUNCTION_NAME:
            return reject(f"Unknown function {call.name!r}.")
        if not isinstance(call.args, dict):
            return reject("Arguments must be a JSON object.")

        tool_id = call.args.get("tool_id")
        reset = call.args.get("reset", False)

        if not isinstance(tool_id, str) or not tool_id:
            return reject("Missing required argument 'tool_id'.")
        definition = self._registry.get(tool_id)
        if definition is None:
            return reject(f"Unknown tool_id {tool_id!r}. Valid options: {', '.join(self._registry.ids())}.")
        if not isinstance(reset, bool):
            return reject("Argument 'reset' must be a boolean.")

        if reset:
            self._store.replace_all([tool_id])
            message = f"Pipeline reset; added step '{definition.name}' ({tool_id})."
        else:
            self._store.append(tool_id)
            message = f"Added step '{definition.name}' ({tool_id})."
        return CallResult(name=call.name, call_id=call.call_id, ok=True, message=message)

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    def submit(self, utterance: str, cancel: CancelToken | None = None) -> ConversationTurn:
        """
        Run a full turn for `utterance` and return what happened.

        Agent failures, runaway call loops and cancellation abort the turn:
        the returned turn carries the error kind and a generic reply, the
        utterance stays in history, and no assistant message is appended.
        Raises InvalidArgumentError for a blank utterance and BusyError if
        a turn is already in flight.
        """
        if not utterance or not utterance.strip():
            raise InvalidArgumentError("Utterance must not be empty.")
        if not self._guard.acquire(blocking=False):
            raise BusyError("A conversation turn is already in progress.")

        cancel = cancel or CancelToken()
        turn = ConversationTurn(utterance=utterance)

        try:
            display.utterance_received(utterance)
            self._history.append(ChatMessage(role="user", content=utterance))
            turn.reply = self._converse(turn, cancel)
            self._history.append(ChatMessage(role="model", content=turn.reply))
            display.assistant_reply(turn.reply)
        except (AgentUnavailableError, ProtocolLoopExceededError, CancelledError) as exc:
            turn.error = exc.kind.value
            turn.reply = GENERIC_FAILURE
            display.turn_failed(exc.kind.value, str(exc))
        finally:
            self._state = TurnState.IDLE
            self._guard.release()

        return turn

    def _converse(self, turn: ConversationTurn, cancel: CancelToken) -> str:
        cancel.raise_if_cancelled()
        self._state = TurnState.AWAITING_AGENT_REPLY
        display.calling_agent(0)
        reply = self._record(turn, self._agent.send(self.history, self.capabilities))

        while reply.calls:
            cancel.raise_if_cancelled()
            if turn.rounds >= self._max_rounds:
                raise ProtocolLoopExceededError(
                    f"Agent requested more than {self._max_rounds} round(s) of function calls."
                )
            turn.rounds += 1

            self._state = TurnState.PROCESSING_TOOL_CALLS
            results = []
            for call in reply.calls:
                result = self.apply_call(call)
                display.tool_call_applied(call, result)
                results.append(result)
            turn.results.extend(results)

            cancel.raise_if_cancelled()
            self._state = TurnState.AWAITING_AGENT_REPLY
            display.calling_agent(turn.rounds)
            reply = self._record(turn, self._agent.send_follow_up(results))

        if turn.rounds and not reply.text:
            return FALLBACK_CONFIRMATION
        return reply.text

    @staticmethod
    def _record(turn: ConversationTurn, reply: AgentReply) -> AgentReply:
        turn.replies.append(reply)
        return reply
