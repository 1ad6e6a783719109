# run.py
# Entry point. Config and wiring only, no logic lives here.
#
# Builds a pipeline by hand, runs it against the default seed input, then
# lets the assistant edit the pipeline if an API key is configured.

from workflow_orchestrator import config, display
from workflow_orchestrator.workbench import Workbench

GREETING = "Hi! Tell me which tools to add to your workflow, or ask me to start over."

# Chat prompts: one append, one reset.
PROMPTS = [
    "Add matrix addition, then log the state.",
    "Start over with data normalization.",
]


def main() -> None:
    bench = Workbench(greeting=GREETING)
    display.banner(config.AGENT_MODEL, len(bench.registry))

    for tool_id in ("matrix.add", "data.normalize", "poly.fit", "utils.log"):
        bench.add_step(tool_id)
    bench.show_pipeline()

    log = bench.start_run().execute()
    display.execution_summary(log)

    if not config.OPENROUTER_API_KEY:
        display.console.print("[dim]OPENROUTER_API_KEY not set, skipping the assistant demo.[/dim]")
        return

    for prompt in PROMPTS:
        bench.submit(prompt)
        bench.show_pipeline()


if __name__ == "__main__":
    main()
