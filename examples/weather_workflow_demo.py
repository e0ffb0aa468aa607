"""
Weather workflow demo: runs the pipeline once, echoing the agent's
fragments to stdout as they stream in.

Usage:
    OPENROUTER_API_KEY=... python examples/weather_workflow_demo.py osaka
"""
import asyncio
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.config import Settings
from core.errors import PipelineError
from core.logging_setup import setup_logging
from core.run_state import PipelineRun
from workflows.weather_workflow import create_weather_workflow


def echo(fragment: str):
    print(fragment, end="", flush=True)


async def main(city: str):
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    workflow = create_weather_workflow(settings)

    run = PipelineRun()
    try:
        await workflow.execute({"city": city}, on_fragment=echo, run=run)
    except PipelineError as e:
        print(f"\n❌ {e.kind} at {e.step_name}: {e.message}")
        return 1

    print(f"\n\n✅ Run {run.run_id} finished")
    for step in run.completed_steps:
        print(f"   • {step['step']}: {step['duration_ms']} ms")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "tokyo")))
