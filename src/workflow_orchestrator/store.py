# store.py
# Pipeline store: the ordered, mutable list of steps.
#
# Both direct user edits and agent-driven edits land here, possibly from
# different threads. Every mutation holds the store lock for its whole
# duration, so readers only ever see the state before or after it.

import threading
import uuid

from workflow_orchestrator.errors import InvalidArgumentError
from workflow_orchestrator.models import Step


class PipelineStore:
    """Ordered sequence of Step. Insertion order is execution order."""

    def __init__(self) -> None:
        self._steps: list[Step] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._steps)

    def __iter__(self):
        return iter(self.snapshot())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> list[Step]:
        """Shallow copy of the current steps, safe to iterate while others mutate."""
        with self._lock:
            return list(self._steps)

    def get(self, instance_id: str) -> Step | None:
        with self._lock:
            for step in self._steps:
                if step.instance_id == instance_id:
                    return step
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, tool_id: str) -> Step:
        step = Step(instance_id=str(uuid.uuid4()), tool_id=tool_id)
        with self._lock:
            self._steps.append(step)
        return step

    def remove_by_id(self, instance_id: str) -> bool:
        with self._lock:
            for index, step in enumerate(self._steps):
                if step.instance_id == instance_id:
                    del self._steps[index]
                    return True
        return False

    def move_to(self, from_index: int, to_index: int) -> None:
        """
        Move the step at `from_index` so it ends up at `to_index`.

        Both indices must lie in [0, len). Raises InvalidArgumentError
        otherwise and leaves the pipeline unchanged.
        """
        with self._lock:
            size = len(self._steps)
            for name, value in (("from_index", from_index), ("to_index", to_index)):
                if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < size:
                    raise InvalidArgumentError(
                        f"{name}={value!r} is out of range for a pipeline of {size} step(s)."
                    )
            step = self._steps.pop(from_index)
            self._steps.insert(to_index, step)

    def replace_all(self, tool_ids: list[str]) -> list[Step]:
        """Discard every existing step and install fresh ones for `tool_ids`."""
        fresh = [Step(instance_id=str(uuid.uuid4()), tool_id=tool_id) for tool_id in tool_ids]
        with self._lock:
            self._steps = list(fresh)
        return fresh

    def clear(self) -> None:
        with self._lock:
            self._steps = []
