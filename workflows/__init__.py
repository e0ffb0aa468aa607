from .weather_workflow import build_weather_workflow, create_weather_workflow, WORKFLOW_ID

__all__ = ["build_weather_workflow", "create_weather_workflow", "WORKFLOW_ID"]
