import json
from unittest.mock import MagicMock

import pytest
from openai import OpenAIError

from bus_tracker.api import llm
from bus_tracker.api.errors import ExternalServiceError, InvalidRouteError
from bus_tracker.api.models import Route, Stop

ROUTE_JSON = {
    "name": "Ruta 1",
    "stops": [
        {"name": "Parque Central", "coordinates": [13.0919, -86.3538]},
        {"name": "Mercado", "coordinates": [13.0871, -86.3525]},
    ],
    "path": [[13.0919, -86.3538], [13.0871, -86.3525], [13.0919, -86.3538]],
}


@pytest.fixture
def client():
    mock = MagicMock()
    llm.set_client(mock)
    yield mock
    llm.set_client(None)


def reply_with(client, content):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    client.chat.completions.create.return_value = MagicMock(choices=[choice])


def test_find_route_parses_json(client):
    reply_with(client, json.dumps(ROUTE_JSON))
    route = llm.find_route("ruta 1")

    assert route.name == "Ruta 1"
    assert [s.name for s in route.stops] == ["Parque Central", "Mercado"]
    assert route.path[0] == (13.0919, -86.3538)

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert "ruta 1" in kwargs["messages"][0]["content"]


def test_find_route_missing_fields_is_invalid(client):
    reply_with(client, json.dumps({"name": "Ruta 1", "stops": []}))
    with pytest.raises(InvalidRouteError):
        llm.find_route("ruta 1")


def test_find_route_non_json_is_service_failure(client):
    reply_with(client, "Sure! Here is your route: ...")
    with pytest.raises(ExternalServiceError):
        llm.find_route("ruta 1")


def test_transport_failure_is_service_failure(client):
    client.chat.completions.create.side_effect = OpenAIError("connection reset")
    with pytest.raises(ExternalServiceError):
        llm.generate_stop_announcement("Mercado")


def test_empty_response_is_service_failure(client):
    reply_with(client, "")
    with pytest.raises(ExternalServiceError):
        llm.generate_chat_response("hola", None, None)


def test_announcement_strips_quotes(client):
    reply_with(client, '  "Next up is the Mercado, full of local crafts."  ')
    assert llm.generate_stop_announcement("Mercado") == "Next up is the Mercado, full of local crafts."


def test_chat_prompt_carries_context(client):
    reply_with(client, "Get off at Mercado.")
    route = Route.from_dict(ROUTE_JSON)

    reply = llm.generate_chat_response("Where is the market?", route, Stop("Mercado", (13.0871, -86.3525)))

    assert reply == "Get off at Mercado."
    prompt = client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
    assert '"Ruta 1"' in prompt
    assert '"Mercado"' in prompt
    assert "Where is the market?" in prompt


def test_missing_api_key_is_service_failure(monkeypatch):
    llm.set_client(None)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ExternalServiceError):
        llm.find_route("ruta 1")
