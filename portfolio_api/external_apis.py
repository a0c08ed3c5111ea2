"""
Thin clients for the public APIs proxied by the service.
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from typing import Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds

GITHUB_API_URL = "https://api.github.com"
OPENWEATHERMAP_API_URL = "https://api.openweathermap.org/data"
SPOONACULAR_API_URL = "https://api.spoonacular.com"

PAST_WEATHER_DAYS = 5
RECIPE_RESULT_COUNT = 10

GITHUB_PROFILE_FIELDS = (
    "login",
    "id",
    "avatar_url",
    "html_url",
    "name",
    "company",
    "location",
    "bio",
    "public_repos",
    "followers",
    "following",
    "created_at",
    "updated_at",
)


class UpstreamError(Exception):
    """A third-party API call failed or returned something unusable."""


class UpstreamNotFound(UpstreamError):
    pass


class MissingApiKeyError(UpstreamError):
    pass


def try_decode_base64(value: Optional[str]) -> str:
    """
    Returns the decoded text if ``value`` is base64 for printable UTF-8,
    otherwise ``value`` unchanged. Keys are often stored encoded in
    deployment secrets.
    """
    if not value:
        return ""
    try:
        decoded = base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return value
    if not decoded or not decoded.isprintable():
        return value
    return decoded


# Malformed or unexpected payloads from a single best-effort item.
ITEM_ERRORS = (
    requests.RequestException,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    AttributeError,
)


def _require_key(raw_key: Optional[str], env_name: str, service: str) -> str:
    key = try_decode_base64(raw_key)
    if not key:
        logger.error("%s environment variable is not set", env_name)
        raise MissingApiKeyError(f"{service} API key is not configured")
    return key


def _get(url: str, failure_message: str, **kwargs) -> requests.Response:
    try:
        return requests.get(url, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as exc:
        logger.error("Request to %s failed: %s", url, exc)
        raise UpstreamError(failure_message) from exc


def _json(response: requests.Response, failure_message: str):
    try:
        return response.json()
    except ValueError as exc:
        logger.error("Response body is not valid JSON: %s", exc)
        raise UpstreamError(failure_message) from exc


def fetch_github_profile(username: str, api_key: Optional[str]) -> dict:
    key = _require_key(api_key, "GITHUB_API_KEY", "GitHub")
    username = username.strip()
    logger.info("Fetching GitHub profile for username: %s", username)
    response = _get(
        f"{GITHUB_API_URL}/users/{quote(username, safe='')}",
        "Failed to retrieve data from GitHub API",
        headers={
            "Authorization": f"token {key}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "portfolio-api",
        },
    )
    if response.status_code == 404:
        raise UpstreamNotFound(f"GitHub user with username '{username}' not found")
    if not response.ok:
        logger.error(
            "GitHub API returned status %s: %s", response.status_code, response.reason
        )
        raise UpstreamError(
            f"Failed to retrieve data from GitHub API: {response.reason}"
        )
    data = _json(response, "Failed to retrieve data from GitHub API")
    if not isinstance(data, dict):
        raise UpstreamError("Failed to retrieve data from GitHub API")
    return {name: data.get(name) for name in GITHUB_PROFILE_FIELDS}


def _weather_point(item: dict) -> dict:
    weather = (item.get("weather") or [{}])[0]
    return {
        "timestamp": item.get("dt"),
        "temperature": item.get("main", {}).get("temp"),
        "description": weather.get("description"),
        "icon": weather.get("icon"),
    }


def _fetch_past_day(lat: float, lon: float, key: str, dt: int) -> Optional[dict]:
    response = requests.get(
        f"{OPENWEATHERMAP_API_URL}/3.0/onecall/timemachine",
        params={"lat": lat, "lon": lon, "dt": dt, "appid": key, "units": "metric"},
        timeout=REQUEST_TIMEOUT,
    )
    if not response.ok:
        return None
    result = response.json()
    data = (result.get("data") or [None])[0] or result.get("current") or result
    weather = (data.get("weather") or [{}])[0]
    return {
        "timestamp": data.get("dt"),
        "temperature": data.get("temp"),
        "description": weather.get("description") or "N/A",
        "icon": weather.get("icon") or "",
    }


def _fetch_past_weather(lat: float, lon: float, key: str, now: int) -> list[dict]:
    past = []
    for days_ago in range(1, PAST_WEATHER_DAYS + 1):
        try:
            point = _fetch_past_day(lat, lon, key, now - days_ago * 24 * 60 * 60)
        except ITEM_ERRORS as exc:
            logger.warning("Historical weather for %d days ago skipped: %s", days_ago, exc)
            continue
        if point is not None:
            past.append(point)
    return past


def fetch_weather(city: str, api_key: Optional[str]) -> dict:
    """
    Current conditions, the 5 day / 3 hour forecast and a best-effort view of
    the past few days for ``city``. Temperatures are metric.
    """
    key = _require_key(api_key, "OPENWEATHERMAP_API_KEY", "OpenWeatherMap")
    current_failure = "Failed to retrieve current weather data from OpenWeatherMap API"
    forecast_failure = "Failed to retrieve forecast weather data from OpenWeatherMap API"

    current_resp = _get(
        f"{OPENWEATHERMAP_API_URL}/2.5/weather",
        current_failure,
        params={"q": city, "appid": key, "units": "metric"},
    )
    if not current_resp.ok:
        logger.error(
            "Failed to fetch current weather: %s %s",
            current_resp.status_code,
            current_resp.reason,
        )
        raise UpstreamError(current_failure)
    current_data = _json(current_resp, current_failure)
    try:
        lat = current_data["coord"]["lat"]
        lon = current_data["coord"]["lon"]
        current_weather = current_data["weather"][0]
        current = {
            "temperature": current_data["main"]["temp"],
            "humidity": current_data["main"]["humidity"],
            "description": current_weather["description"],
            "icon": current_weather["icon"],
        }
    except (KeyError, IndexError, TypeError) as exc:
        logger.error("Unexpected current weather payload: %s", exc)
        raise UpstreamError(current_failure) from exc

    forecast_resp = _get(
        f"{OPENWEATHERMAP_API_URL}/2.5/forecast",
        forecast_failure,
        params={"lat": lat, "lon": lon, "appid": key, "units": "metric"},
    )
    if not forecast_resp.ok:
        logger.error(
            "Failed to fetch forecast weather: %s %s",
            forecast_resp.status_code,
            forecast_resp.reason,
        )
        raise UpstreamError(forecast_failure)
    forecast_data = _json(forecast_resp, forecast_failure)
    try:
        forecast = [_weather_point(item) for item in forecast_data.get("list", [])]
    except (AttributeError, IndexError, TypeError) as exc:
        logger.error("Unexpected forecast payload: %s", exc)
        raise UpstreamError(forecast_failure) from exc

    return {
        "current": current,
        "forecast": forecast,
        "past": _fetch_past_weather(lat, lon, key, int(time.time())),
    }


def _recipe_instructions(detail: dict) -> str:
    if detail.get("instructions"):
        return detail["instructions"]
    analyzed = detail.get("analyzedInstructions") or []
    if analyzed and isinstance(analyzed[0].get("steps"), list):
        return " ".join(
            f"{step.get('number')}. {step.get('step')}" for step in analyzed[0]["steps"]
        )
    return ""


def _fetch_recipe(recipe_id, key: str) -> Optional[dict]:
    detail_resp = requests.get(
        f"{SPOONACULAR_API_URL}/recipes/{recipe_id}/information",
        params={"apiKey": key},
        timeout=REQUEST_TIMEOUT,
    )
    if not detail_resp.ok:
        logger.warning("Failed to fetch details for recipe %s", recipe_id)
        return None
    detail = detail_resp.json()
    return {
        "title": detail.get("title") or "",
        "ingredients": [
            item["original"]
            for item in detail.get("extendedIngredients") or []
            if item.get("original")
        ],
        "instructions": _recipe_instructions(detail),
        "image_url": detail.get("image") or "",
        "source_url": detail.get("sourceUrl")
        or detail.get("spoonacularSourceUrl")
        or "",
    }


def search_recipes(ingredients: str, api_key: Optional[str]) -> list[dict]:
    key = _require_key(api_key, "SPOONACULAR_API_KEY", "Spoonacular")
    failure = "Failed to retrieve recipes from the API"
    logger.info("Searching recipes with ingredients: %s", ingredients)

    search_resp = _get(
        f"{SPOONACULAR_API_URL}/recipes/findByIngredients",
        failure,
        params={
            "ingredients": ingredients,
            "number": RECIPE_RESULT_COUNT,
            "apiKey": key,
        },
    )
    if not search_resp.ok:
        logger.error(
            "Spoonacular API search request failed with status: %s",
            search_resp.status_code,
        )
        raise UpstreamError(failure)
    results = _json(search_resp, failure)
    if not isinstance(results, list):
        logger.error("Unexpected response format from Spoonacular API")
        raise UpstreamError(failure)

    recipes = []
    for result in results:
        try:
            recipe = _fetch_recipe(result.get("id"), key)
        except ITEM_ERRORS as exc:
            logger.error("Error processing recipe details: %s", exc)
            continue
        if recipe is not None:
            recipes.append(recipe)
    logger.info("Successfully retrieved %d recipes", len(recipes))
    return recipes
