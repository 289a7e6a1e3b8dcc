"""Run the outreach workflow programmatically.

Requires an OpenAI key in ``OPENAI_API_KEY`` (or ``AGENTFLOW_OPENAI_API_KEY``)
and a public Google Sheet with an ``email`` column.
"""

import asyncio
import logging
from pathlib import Path

from agentflow import CancellationToken, Orchestrator, RunCallbacks, build_services
from agentflow.loader import load_workflow
from agentflow.persistence import InMemoryRunRepository


def on_progress(step_id, percent, message):
    print(f"[{percent:5.1f}%] {step_id}: {message}")


def on_error(step_id, error):
    print(f"  {step_id} failed: {error.type}: {error.message}")


async def main():
    logging.basicConfig(level=logging.INFO)
    workflow = load_workflow(Path(__file__).with_name("outreach.yaml"))
    services = build_services()
    repository = InMemoryRunRepository()
    orchestrator = Orchestrator(services, repository=repository)

    # Cancel the run if it takes longer than five minutes
    token = CancellationToken()
    asyncio.get_running_loop().call_later(300, token.cancel, "took too long")

    try:
        result = await orchestrator.run(
            workflow,
            RunCallbacks(on_progress=on_progress, on_error=on_error),
            cancellation=token,
        )
    finally:
        await services.aclose()

    print(f"Run {result.run_id}: {result.status.value}")
    for record in result.records:
        print(f" - {record.step_name}: {'ok' if record.success else record.error.message}")
    print(f"Emails sent: {result.final_variables.get('emails_sent', 0)}")


if __name__ == "__main__":
    asyncio.run(main())
