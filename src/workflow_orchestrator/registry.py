# registry.py
# Tool registry: static metadata for every tool a step may reference.
# Loaded once at import time and never mutated afterwards.

import json

from workflow_orchestrator.models import ToolDefinition

TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(id="matrix.add", name="Matrix Addition", description="Add two matrices together.", category="math"),
    ToolDefinition(id="matrix.mul", name="Matrix Multiplication", description="Multiply two matrices.", category="math"),
    ToolDefinition(id="matrix.inv", name="Matrix Inversion", description="Calculate the inverse of a matrix.", category="math"),
    ToolDefinition(id="data.normalize", name="Data Normalization", description="Normalize a dataset to 0-1 range.", category="data"),
    ToolDefinition(id="poly.fit", name="Polynomial Fit", description="Fit a polynomial to data points.", category="analysis"),
    ToolDefinition(id="poly.evaluate", name="Polynomial Evaluate", description="Evaluate a polynomial at given x.", category="analysis"),
    ToolDefinition(id="error.metrics", name="Error Metrics", description="Calculate MSE and MAE errors.", category="analysis"),
    ToolDefinition(id="utils.log", name="Logger", description="Log current state to console.", category="utility"),
)

CATEGORY_LABELS: dict[str, str] = {
    "math": "Math",
    "data": "Data",
    "analysis": "Analysis",
    "utility": "Utility",
}

DEFAULT_INPUT_JSON = json.dumps(
    {
        "matrix_a": [[1, 2], [3, 4]],
        "matrix_b": [[5, 6], [7, 8]],
        "x": [0.0, 0.5, 1.0, 1.5, 2.0],
        "y": [1.1, 1.4, 2.0, 3.1, 4.2],
    },
    indent=2,
)


class ToolRegistry:
    """
    Read-only mapping from tool id to ToolDefinition.

    Ids must be unique; a duplicate in the source list is a programming
    error and raises ValueError at construction.
    """

    def __init__(self, definitions=TOOL_DEFINITIONS) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.id in self._tools:
                raise ValueError(f"Duplicate tool id in registry: {definition.id!r}")
            self._tools[definition.id] = definition

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self):
        return iter(self._tools.values())

    def get(self, tool_id: str) -> ToolDefinition | None:
        return self._tools.get(tool_id)

    def resolve(self, tool_id: str) -> ToolDefinition:
        """Like get(), but raises KeyError for an unknown id."""
        try:
            return self._tools[tool_id]
        except KeyError:
            raise KeyError(f"Tool {tool_id!r} is not registered.") from None

    def ids(self) -> list[str]:
        return list(self._tools)

    def by_category(self, category: str) -> list[ToolDefinition]:
        return [tool for tool in self._tools.values() if tool.category == category]
