"""Open-Meteo forecast client for the dashboard weather widget.

Open-Meteo needs no API key. Responses are cached for 15 minutes (their
recommendation) in a ``TTLCache`` owned by the client.
"""
import logging
import time

import requests
from flask import current_app

from ..utils.clock import utcnow

API_URL = "https://api.open-meteo.com/v1/forecast"

# WMO weather codes, https://open-meteo.com/en/docs#weathervariables
WEATHER_CODE_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

logger = logging.getLogger(__name__)


def describe_weather_code(code):
    return WEATHER_CODE_DESCRIPTIONS.get(code, "Unknown")


class TTLCache:
    def __init__(self, ttl_seconds, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries = {}

    def get(self, key):
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key, value):
        self._entries[key] = (self.clock(), value)

    def clear(self):
        self._entries.clear()


class WeatherClient:
    def __init__(self, latitude, longitude, location, timezone="UTC", cache=None,
                 session=None, timeout=10):
        self.latitude = latitude
        self.longitude = longitude
        self.location = location
        self.timezone = timezone
        self.cache = cache or TTLCache(15 * 60)
        self.session = session or requests.Session()
        self.timeout = timeout

    def _params(self):
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "current": "temperature_2m,weather_code,wind_speed_10m,wind_direction_10m",
            "daily": "temperature_2m_max,temperature_2m_min,weather_code,precipitation_sum,precipitation_probability_max",
            "timezone": self.timezone,
            "forecast_days": 7,
        }

    def parse(self, data):
        current = data["current"]
        daily = data["daily"]
        forecast = []
        for i, day in enumerate(daily["time"]):
            code = daily["weather_code"][i]
            forecast.append({
                "date": day,
                "temperatureMax": daily["temperature_2m_max"][i],
                "temperatureMin": daily["temperature_2m_min"][i],
                "weatherCode": code,
                "weatherDescription": describe_weather_code(code),
                "precipitationSum": daily["precipitation_sum"][i],
                "precipitationProbability": daily["precipitation_probability_max"][i],
            })
        return {
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "current": {
                "temperature": current["temperature_2m"],
                "weatherCode": current["weather_code"],
                "weatherDescription": describe_weather_code(current["weather_code"]),
                "windSpeed": current["wind_speed_10m"],
                "windDirection": current["wind_direction_10m"],
            },
            "forecast": forecast,
            "lastUpdated": utcnow().isoformat() + "Z",
        }

    def get_weather(self):
        """Current conditions + 7 day forecast, or ``None`` if Open-Meteo is unavailable."""
        key = (self.latitude, self.longitude)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            resp = self.session.get(API_URL, params=self._params(), timeout=self.timeout)
            resp.raise_for_status()
            weather = self.parse(resp.json())
        except (requests.RequestException, KeyError, IndexError, TypeError, ValueError):
            logger.exception("Error fetching weather data")
            return None
        self.cache.set(key, weather)
        return weather


def get_weather_client():
    """Per-app client, so the cache lives as long as the app does."""
    client = current_app.extensions.get("weather_client")
    if client is None:
        cfg = current_app.config
        client = WeatherClient(
            cfg["WEATHER_LATITUDE"],
            cfg["WEATHER_LONGITUDE"],
            cfg["WEATHER_LOCATION"],
            timezone=cfg.get("WEATHER_TIMEZONE", "UTC"),
            cache=TTLCache(cfg.get("WEATHER_CACHE_TTL_SECONDS", 15 * 60)),
        )
        current_app.extensions["weather_client"] = client
    return client
