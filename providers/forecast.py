"""
Forecast Providers
==================

Interface and implementations of the forecast source used by the
``fetch-weather`` step.

- ForecastProvider: abstract interface (geocode + fetch_weather), with a
  concrete ``lookup`` that reduces the hourly data into one Forecast.
- MockForecastProvider: deterministic for a few known cities, simulated
  weather; seedable for tests.
- OpenMeteoForecastProvider: real geocoding and forecast over HTTP (httpx).
"""

import asyncio
import logging
import math
import random
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from core.errors import LocationNotFound

logger = logging.getLogger(__name__)

# WMO weather interpretation codes
WEATHER_CONDITIONS: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    95: "Thunderstorm",
}


def get_weather_condition(code: int) -> str:
    return WEATHER_CONDITIONS.get(code, "Unknown")


class Location(BaseModel):
    """Resolved place."""
    latitude: float
    longitude: float
    name: str


class WeatherReport(BaseModel):
    """Hourly forecast for the next hours plus the current condition."""
    time: str = Field(..., description="ISO-8601 timestamp of the report")
    weathercode: int = Field(..., description="Current WMO weather code")
    temperature_2m: List[float] = Field(default_factory=list)
    precipitation_probability: List[float] = Field(default_factory=list)


class Forecast(BaseModel):
    """Payload handed from fetch-weather to plan-activities."""
    date: str
    maxTemp: float
    minTemp: float
    precipitationChance: float = Field(..., ge=0, le=100)
    condition: str
    location: str


def build_forecast(location: Location, report: WeatherReport) -> Forecast:
    """
    Reduce an hourly report to a daily forecast.

    Raises:
        ValueError: If the report has no temperature data
    """
    if not report.temperature_2m:
        raise ValueError(f"Weather report for '{location.name}' has no temperature data")
    return Forecast(
        date=report.time,
        maxTemp=max(report.temperature_2m),
        minTemp=min(report.temperature_2m),
        precipitationChance=max(report.precipitation_probability, default=0),
        condition=get_weather_condition(report.weathercode),
        location=location.name,
    )


class ForecastProvider(ABC):
    """Source of locations and weather."""

    @abstractmethod
    async def geocode(self, name: str) -> Location:
        """
        Resolve a place name.

        Raises:
            LocationNotFound: If the name cannot be resolved
        """

    @abstractmethod
    async def fetch_weather(self, location: Location) -> WeatherReport:
        """Fetch the hourly forecast for a resolved location."""

    async def lookup(self, name: str) -> Forecast:
        """Resolve ``name`` and return its forecast."""
        location = await self.geocode(name)
        logger.info(f"📍 [Forecast] {name!r} -> {location.name} ({location.latitude:.4f}, {location.longitude:.4f})")
        report = await self.fetch_weather(location)
        return build_forecast(location, report)


KNOWN_CITIES: Dict[str, Location] = {
    "tokyo": Location(latitude=35.6762, longitude=139.6503, name="Tokyo"),
    "osaka": Location(latitude=34.6937, longitude=135.5023, name="Osaka"),
    "kyoto": Location(latitude=35.0116, longitude=135.7681, name="Kyoto"),
    "london": Location(latitude=51.5074, longitude=-0.1278, name="London"),
    "newyork": Location(latitude=40.7128, longitude=-74.0060, name="New York"),
    "paris": Location(latitude=48.8566, longitude=2.3522, name="Paris"),
}

MOCK_WEATHER_CODES = [0, 1, 2, 3, 51, 61, 71]


def _city_key(name: str) -> str:
    return "".join(name.lower().split())


class MockForecastProvider(ForecastProvider):
    """
    Simulated provider.

    Known cities resolve to fixed coordinates. Unknown names are synthesized
    near Tokyo, or rejected with LocationNotFound when ``strict`` is set.

    Args:
        strict: Fail on unknown names instead of synthesizing a location
        seed: Seed for the simulated weather and synthesized coordinates
        latency: Seconds to sleep per simulated API call
    """

    def __init__(self, strict: bool = False, seed: Optional[int] = None, latency: float = 0.0):
        self.strict = strict
        self.seed = seed
        self.latency = latency

    def _rng(self) -> random.Random:
        # Fresh generator per call: no state shared between runs
        return random.Random(self.seed)

    async def geocode(self, name: str) -> Location:
        if self.latency:
            await asyncio.sleep(self.latency)

        known = KNOWN_CITIES.get(_city_key(name))
        if known is not None:
            return known
        if self.strict or not name.strip():
            raise LocationNotFound(name)

        rng = self._rng()
        logger.warning(f"⚠️ [Forecast] Unknown city {name!r}, synthesizing coordinates")
        return Location(
            latitude=35.6762 + (rng.random() - 0.5) * 10,
            longitude=139.6503 + (rng.random() - 0.5) * 10,
            name=name,
        )

    async def fetch_weather(self, location: Location) -> WeatherReport:
        if self.latency:
            await asyncio.sleep(self.latency)

        rng = self._rng()
        now = datetime.now(timezone.utc)
        temperatures = []
        for i in range(24):
            # Diurnal curve peaking at noon
            hour = (now.hour + i) % 24
            variation = math.sin((hour - 6) * math.pi / 12) * 10
            temperatures.append(20 + variation + (rng.random() - 0.5) * 3)

        return WeatherReport(
            time=now.isoformat(),
            weathercode=rng.choice(MOCK_WEATHER_CODES),
            temperature_2m=temperatures,
            precipitation_probability=[rng.randrange(100) for _ in range(24)],
        )


GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"


class OpenMeteoForecastProvider(ForecastProvider):
    """
    Open-Meteo backed provider.

    Unresolvable names always raise LocationNotFound; nothing is guessed.

    Args:
        timeout: HTTP timeout in seconds
        hours: Forecast window (clamped to 1..24)
        transport: Optional httpx transport (tests inject httpx.MockTransport)
    """

    def __init__(self, timeout: float = 10.0, hours: int = 24, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.hours = max(1, min(int(hours), 24))
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def geocode(self, name: str) -> Location:
        params = {"name": name, "count": 1, "language": "en", "format": "json"}
        async with self._client() as client:
            response = await client.get(GEOCODING_URL, params=params)
            response.raise_for_status()
            results = response.json().get("results") or []

        if not results:
            raise LocationNotFound(name)
        first = results[0]
        return Location(
            latitude=float(first["latitude"]),
            longitude=float(first["longitude"]),
            name=first.get("name") or name,
        )

    async def fetch_weather(self, location: Location) -> WeatherReport:
        params = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": "weather_code",
            "hourly": "temperature_2m,precipitation_probability",
            "forecast_hours": self.hours,
            "timezone": "auto",
        }
        async with self._client() as client:
            response = await client.get(FORECAST_URL, params=params)
            response.raise_for_status()
            data = response.json()

        current = data.get("current", {})
        hourly = data.get("hourly", {})
        return WeatherReport(
            time=current.get("time") or datetime.now(timezone.utc).isoformat(),
            weathercode=int(current.get("weather_code", -1)),
            temperature_2m=[t for t in hourly.get("temperature_2m", [])[: self.hours] if t is not None],
            precipitation_probability=[
                p for p in hourly.get("precipitation_probability", [])[: self.hours] if p is not None
            ],
        )


def create_forecast_provider(settings) -> ForecastProvider:
    """Build the provider selected by ``settings.forecast_provider``."""
    if settings.forecast_provider == "open-meteo":
        return OpenMeteoForecastProvider(timeout=settings.provider_timeout or 10.0)
    return MockForecastProvider(strict=settings.strict_geocoding)
