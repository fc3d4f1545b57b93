"""LLM helper functions for the bus tracker.

Route lookup, stop announcements and rider chat all go through OpenAI Chat
Completions. The client is created on first use so the app (and its tests)
can start without an API key.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from bus_tracker.api.config import get_chat_model, get_city, get_openai_api_key
from bus_tracker.api.errors import ExternalServiceError, InvalidRouteError
from bus_tracker.api.models import Route, Stop

logger = logging.getLogger(__name__)

_client: OpenAI | None = None


def _get_client() -> OpenAI:
    """Return a cached OpenAI client instance."""
    global _client
    if _client is None:
        try:
            _client = OpenAI(api_key=get_openai_api_key())
        except (ValueError, OpenAIError) as exc:
            logger.error("Failed to initialize OpenAI client: %s", exc)
            raise ExternalServiceError(f"OpenAI client unavailable: {exc}") from exc
    return _client


def set_client(client) -> None:
    """Swap the OpenAI client, e.g. for a mock in tests."""
    global _client
    _client = client


# ---------------------------------------------------------------------------
# Prompt construction helpers
# ---------------------------------------------------------------------------

def _build_route_prompt(query: str, city: str) -> str:
    return (
        f"You are an expert urban transport cartographer for {city}. "
        "Provide the data for a single, real bus route based on the user's query. "
        f"The user is asking for: \"{query}\". "
        "The path must follow real streets, connect all the stops in order and form "
        "a complete loop ending where it started. Provide at least 15 realistic stops. "
        "Reply in strict JSON with the schema: "
        "{\n  \"name\": <str>,\n  \"stops\": [ {\"name\": <str>, \"coordinates\": [<lat>, <lon>]} ],\n"
        "  \"path\": [ [<lat>, <lon>] ]\n}"
    )


def _build_announcement_prompt(stop_name: str, city: str) -> str:
    return (
        f"You are a friendly tour guide on a bus in {city}. "
        "Announce the next stop in a single sentence under 20 words and mention "
        "an interesting fact or nearby point of interest. "
        f"The upcoming stop is \"{stop_name}\"."
    )


def _build_chat_prompt(message: str, route: Optional[Route], next_stop: Optional[Stop], city: str) -> str:
    context = f"The user is currently on a bus in {city}."
    if route is not None:
        context += f" They are on the route \"{route.name}\"."
    if next_stop is not None:
        context += f" Their next stop is \"{next_stop.name}\"."
    return (
        f"You are a friendly assistant for a bus tracker app in {city}. "
        "Answer questions about bus routes, stops, local points of interest, food "
        "and culture. Be concise.\n\n"
        f"Current context: {context}\n\n"
        f"User's question: \"{message}\""
    )


def _complete(prompt: str, temperature: float, json_mode: bool = False) -> str:
    """Run one chat completion and return the stripped text."""
    kwargs = {
        "model": get_chat_model(),
        "messages": [{"role": "user", "content": prompt}],
        "temperature": temperature,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = _get_client().chat.completions.create(**kwargs)
        content = response.choices[0].message.content
    except ExternalServiceError:
        raise
    except (OpenAIError, IndexError, AttributeError) as exc:
        logger.error("OpenAI call failed: %s", exc)
        raise ExternalServiceError(f"Language model call failed: {exc}") from exc

    if not content:
        raise ExternalServiceError("Language model returned an empty response")
    return content.strip()


def _parse_route(content: str) -> Route:
    """Extract a route from the model's raw JSON string."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse route response: %s", exc)
        raise ExternalServiceError(f"Route response was not valid JSON: {exc}") from exc
    return Route.from_dict(payload)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def find_route(query: str) -> Route:
    """Look up a bus route from a free-text query.

    Raises:
        InvalidRouteError: If the response lacks name, stops or path
        ExternalServiceError: If the call fails or the response is not JSON
    """
    city = get_city()
    logger.debug("Looking up route: model=%s city=%s query=%s", get_chat_model(), city, query)

    content = _complete(_build_route_prompt(query, city), temperature=0.2, json_mode=True)
    try:
        route = _parse_route(content)
    except InvalidRouteError as exc:
        logger.error("Route response rejected: %s", exc)
        raise

    logger.info("Found route %s with %d stops and %d path points",
                route.name, len(route.stops), len(route.path))
    return route


def generate_stop_announcement(stop_name: str) -> str:
    """One friendly sentence announcing ``stop_name``."""
    text = _complete(_build_announcement_prompt(stop_name, get_city()), temperature=0.7)
    return text.strip('"')


def generate_chat_response(message: str, route: Optional[Route], next_stop: Optional[Stop]) -> str:
    """Answer a rider's question with the current route and next stop as context."""
    return _complete(_build_chat_prompt(message, route, next_stop, get_city()), temperature=0.5)
