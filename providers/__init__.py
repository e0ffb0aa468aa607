"""
External providers: forecast source and recommendation agent.
"""
from .forecast import ForecastProvider, MockForecastProvider, OpenMeteoForecastProvider, Forecast, Location
from .recommendation import RecommendationAgent, OpenRouterRecommendationAgent
from .openrouter_async import AsyncOpenRouterProvider

__all__ = [
    'ForecastProvider',
    'MockForecastProvider',
    'OpenMeteoForecastProvider',
    'Forecast',
    'Location',
    'RecommendationAgent',
    'OpenRouterRecommendationAgent',
    'AsyncOpenRouterProvider',
]
