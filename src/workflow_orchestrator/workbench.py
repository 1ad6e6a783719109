# workbench.py
# Presentation → core facade.
#
# A front end (terminal, web, notebook) forwards user intents here: add,
# delete and reorder steps, reset the pipeline, chat with the assistant and
# start a run. Everything except start_run() and submit() is synchronous.

from typing import Any

from workflow_orchestrator import config, display
from workflow_orchestrator.agent import AgentClient, OpenAIAgent, build_system_prompt
from workflow_orchestrator.bridge import ConversationBridge
from workflow_orchestrator.cancellation import CancelToken
from workflow_orchestrator.engine import ExecutionEngine, ProgressCallback, Run
from workflow_orchestrator.errors import BusyError, InvalidArgumentError
from workflow_orchestrator.invokers import ToolInvoker
from workflow_orchestrator.models import ConversationTurn, LogEntry, Step
from workflow_orchestrator.registry import DEFAULT_INPUT_JSON, ToolRegistry
from workflow_orchestrator.store import PipelineStore


class Workbench:
    """Owns one pipeline, its engine, and the assistant conversation editing it."""

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        invoker: ToolInvoker | None = None,
        agent: AgentClient | None = None,
        max_rounds: int = config.MAX_TOOL_ROUNDS,
        greeting: str | None = None,
        seed_json: str = DEFAULT_INPUT_JSON,
    ) -> None:
        self.registry = registry or ToolRegistry()
        self.store = PipelineStore()
        self.engine = ExecutionEngine(self.registry, invoker)
        self.agent = agent or OpenAIAgent(build_system_prompt(self.registry))
        self.bridge = ConversationBridge(
            self.store, self.registry, self.agent, max_rounds=max_rounds, greeting=greeting
        )
        self.seed_json = seed_json
        self._logs: list[LogEntry] = []

    # ------------------------------------------------------------------
    # Pipeline edits
    # ------------------------------------------------------------------

    def add_step(self, tool_id: str) -> Step:
        """Append a registered tool. Unknown ids are rejected here, unlike store.append()."""
        if tool_id not in self.registry:
            raise InvalidArgumentError(f"Tool {tool_id!r} is not registered.")
        return self.store.append(tool_id)

    def delete_step(self, instance_id: str) -> bool:
        return self.store.remove_by_id(instance_id)

    def reorder(self, from_index: int, to_index: int) -> None:
        self.store.move_to(from_index, to_index)

    def reset_pipeline(self) -> None:
        self.store.clear()
        if not self.engine.busy:
            self._logs = []

    def show_pipeline(self) -> None:
        names = {tool.id: tool.name for tool in self.registry}
        display.pipeline_table(self.store.snapshot(), names)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def submit(self, utterance: str, cancel: CancelToken | None = None) -> ConversationTurn:
        return self.bridge.submit(utterance, cancel=cancel)

    @property
    def history(self):
        return self.bridge.history

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @property
    def logs(self) -> list[LogEntry]:
        """Entries of the latest run, updated as it progresses."""
        return list(self._logs)

    def start_run(
        self,
        seed_json: str | None = None,
        cancel: CancelToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> Run:
        """
        Start a run of the current pipeline and return its handle.

        The previous run's log is discarded once the new run has started.
        Iterate the handle (or call execute()) to drive it.
        """
        if self.engine.busy:
            raise BusyError("A run is already in progress.")
        seed = self.seed_json if seed_json is None else seed_json

        def publish(log: list[LogEntry]) -> None:
            self._logs = log
            if on_progress is not None:
                on_progress(log)

        run = self.engine.run(self.store.snapshot(), seed, cancel=cancel, on_progress=publish)
        self._logs = []
        self.seed_json = seed
        return run

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Current state as plain data, for debugging panels and dumps."""
        steps = self.store.snapshot()
        descriptions = []
        for step in steps:
            tool = self.registry.get(step.tool_id)
            if tool is None:
                descriptions.append({"tool_id": step.tool_id, "name": step.tool_id, "description": "Unknown tool"})
            else:
                descriptions.append({"tool_id": tool.id, "name": tool.name, "description": tool.description})

        logs = self.logs
        return {
            "step_count": len(steps),
            "steps": [step.model_dump() for step in steps],
            "tool_descriptions": descriptions,
            "global_input": self.seed_json,
            "execution_logs": [entry.model_dump() for entry in logs],
            "last_execution": logs[-1].timestamp if logs else None,
        }
