from __future__ import annotations

import json
from typing import List

import httpx
import pytest
import typer

from cli.client import ApiClient
from cli.config import CLIConfig


@pytest.fixture
def requests_seen(monkeypatch) -> List[httpx.Request]:
    seen: List[httpx.Request] = []
    real_client = httpx.Client

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/reservations" and request.method == "POST":
            body = json.loads(request.content)
            if body["slot_id"] == 99:
                return httpx.Response(404, json={"detail": "Slot 99 not found."})
            return httpx.Response(201, json={"id": "r1", **body})
        if request.url.path == "/reservations":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"slot_id": 1, "occupied": False}])

    def client_factory(**kwargs) -> httpx.Client:
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr("cli.client.httpx.Client", client_factory)
    return seen


def test_create_reservation_posts_json(requests_seen: List[httpx.Request]) -> None:
    client = ApiClient(CLIConfig(base_url="http://api.test"))

    payload = client.create_reservation(2, "u1", 15)

    assert payload["id"] == "r1"
    request = requests_seen[0]
    assert str(request.url) == "http://api.test/reservations"
    assert json.loads(request.content) == {"slot_id": 2, "user_id": "u1", "duration_minutes": 15}


def test_list_reservations_sends_only_given_filters(requests_seen: List[httpx.Request]) -> None:
    client = ApiClient(CLIConfig(base_url="http://api.test"))

    client.list_reservations(user_id="bob")

    assert dict(requests_seen[0].url.params) == {"user_id": "bob"}


def test_http_error_exits_with_detail(requests_seen: List[httpx.Request], capsys) -> None:
    client = ApiClient(CLIConfig(base_url="http://api.test"))

    with pytest.raises(typer.Exit) as excinfo:
        client.create_reservation(99, "u1", 15)

    assert excinfo.value.exit_code == 1
    assert "Slot 99 not found." in capsys.readouterr().err
