"""
Weather Workflow
================

Two-step pipeline: ``fetch-weather`` resolves a city and summarizes its
forecast, ``plan-activities`` streams activity recommendations for that
forecast from the recommendation agent.

    {city} -> fetch-weather -> Forecast -> plan-activities -> {activities}
"""

import json
import logging
from typing import Any, Dict, Optional

from core.config import Settings
from core.contracts import FieldSpec, define
from providers.forecast import ForecastProvider, create_forecast_provider
from providers.openrouter_async import AsyncOpenRouterProvider
from providers.recommendation import OpenRouterRecommendationAgent, RecommendationAgent
from stepPipeline.pipeline import Pipeline
from stepPipeline.step import Step

logger = logging.getLogger(__name__)

WORKFLOW_ID = "weather-workflow"

CITY_INPUT = define(
    {"city": FieldSpec("string", description="The city to get the weather for")},
    name="CityInput",
)

FORECAST = define(
    {
        "date": FieldSpec("string", description="ISO-8601 timestamp of the forecast"),
        "maxTemp": "number",
        "minTemp": "number",
        "precipitationChance": FieldSpec("number", description="Percent", ge=0, le=100),
        "condition": "string",
        "location": "string",
    },
    name="Forecast",
)

ACTIVITIES = define({"activities": "string"}, name="Activities")


ACTIVITY_PLANNER_INSTRUCTIONS = """
You are a local activities and travel expert who excels at weather-based planning. Analyze the weather data and provide practical activity recommendations.

For each day in the forecast, structure your response exactly as follows:

📅 [Day, Month Date, Year]
═══════════════════════════

🌡️ WEATHER SUMMARY
• Conditions: [brief description]
• Temperature: [X°C/Y°F to A°C/B°F]
• Precipitation: [X% chance]

🌅 MORNING ACTIVITIES
Outdoor:
• [Activity Name] - [Brief description including specific location/route]
  Best timing: [specific time range]
  Note: [relevant weather consideration]

🌞 AFTERNOON ACTIVITIES
Outdoor:
• [Activity Name] - [Brief description including specific location/route]
  Best timing: [specific time range]
  Note: [relevant weather consideration]

🏠 INDOOR ALTERNATIVES
• [Activity Name] - [Brief description including specific venue]
  Ideal for: [weather condition that would trigger this alternative]

⚠️ SPECIAL CONSIDERATIONS
• [Any relevant weather warnings, UV index, wind conditions, etc.]

Guidelines:
- Suggest 2-3 time-specific outdoor activities per day
- Include 1-2 indoor backup options
- For precipitation >50%, lead with indoor activities
- All activities must be specific to the location
- Include specific venues, trails, or locations
- Consider activity intensity based on temperature
- Keep descriptions concise but informative

Maintain this exact formatting for consistency, using the emoji and section headers as shown.
""".strip()


def planner_instructions(language: str) -> str:
    """System prompt for the agent, with the answer language appended."""
    return f"{ACTIVITY_PLANNER_INSTRUCTIONS}\nYou MUST answer in {language}."


def build_activity_prompt(forecast: Dict[str, Any]) -> str:
    return (
        f"Based on the following weather forecast for {forecast['location']}, "
        f"suggest appropriate activities:\n"
        f"{json.dumps(forecast, indent=2, ensure_ascii=False)}\n"
    )


def make_fetch_weather_step(provider: ForecastProvider, timeout: Optional[float] = None) -> Step:
    async def fetch_weather(input_data: Dict[str, Any]) -> Dict[str, Any]:
        forecast = await provider.lookup(input_data["city"])
        return forecast.model_dump()

    return Step(
        name="fetch-weather",
        description="Fetches weather forecast for a given city",
        input_contract=CITY_INPUT,
        output_contract=FORECAST,
        executor=fetch_weather,
        timeout=timeout,
    )


def make_plan_activities_step(agent: RecommendationAgent, timeout: Optional[float] = None) -> Step:
    def plan_activities(forecast: Dict[str, Any]):
        # Fragments are reduced by the step's aggregator into "activities"
        return agent.generate(build_activity_prompt(forecast))

    return Step(
        name="plan-activities",
        description="Suggests activities based on weather conditions",
        input_contract=FORECAST,
        output_contract=ACTIVITIES,
        executor=plan_activities,
        stream_field="activities",
        timeout=timeout,
    )


def build_weather_workflow(
    forecast_provider: ForecastProvider,
    recommendation_agent: RecommendationAgent,
    timeout: Optional[float] = None,
) -> Pipeline:
    """
    Compose the weather workflow from its two collaborators.

    Args:
        forecast_provider: Source of forecasts
        recommendation_agent: Streaming text generator
        timeout: Per-step bound in seconds (None disables)
    """
    return Pipeline.compose(
        make_fetch_weather_step(forecast_provider, timeout),
        make_plan_activities_step(recommendation_agent, timeout),
        name=WORKFLOW_ID,
        input_contract=CITY_INPUT,
        output_contract=ACTIVITIES,
    )


def create_weather_workflow(settings: Settings) -> Pipeline:
    """
    Build the workflow with providers selected by ``settings``.

    Raises:
        ValueError: If no OpenRouter API key is configured
    """
    provider = AsyncOpenRouterProvider(
        api_key=settings.openrouter_api_key,
        model=settings.openrouter_model,
        base_url=settings.openrouter_base_url,
        temperature=settings.llm_temperature,
        timeout=settings.provider_timeout or 30.0,
    )
    agent = OpenRouterRecommendationAgent(provider, planner_instructions(settings.activities_language))
    logger.info(
        f"🔧 [Workflow] {WORKFLOW_ID}: forecast={settings.forecast_provider}, "
        f"model={settings.openrouter_model}, timeout={settings.provider_timeout}s"
    )
    return build_weather_workflow(
        create_forecast_provider(settings),
        agent,
        timeout=settings.provider_timeout or None,
    )
