import json
import logging

from werkzeug.test import Client
from werkzeug.wrappers import Response
from uuid import UUID

from tubely.models import Video
from tubely.responses import cache_middleware, respond_with_error, respond_with_json


def test_json_response_status_type_and_body():
    response = respond_with_json(201, {"name": "clip", "count": 3})
    assert response.status_code == 201
    assert response.headers["Content-Type"] == "application/json"
    assert json.loads(response.get_data(as_text=True)) == {"name": "clip", "count": 3}


def test_json_response_uses_record_to_dict():
    video = Video(id=UUID(int=5), title="Clip", description="desc", user_id=UUID(int=9))
    response = respond_with_json(200, video)
    assert json.loads(response.get_data(as_text=True)) == video.to_dict()


def test_json_response_list_of_records():
    videos = [Video(id=UUID(int=1), title="a"), Video(id=UUID(int=2), title="b")]
    response = respond_with_json(200, videos)
    decoded = json.loads(response.get_data(as_text=True))
    assert [item["title"] for item in decoded] == ["a", "b"]


def test_json_response_empty_list():
    response = respond_with_json(200, [])
    assert json.loads(response.get_data(as_text=True)) == []


def test_unserialisable_payload_gives_empty_500(caplog):
    with caplog.at_level(logging.ERROR, logger="tubely.responses"):
        response = respond_with_json(200, {"bad": object()})
    assert response.status_code == 500
    assert response.get_data() == b""
    assert any("Error marshalling JSON" in record.getMessage() for record in caplog.records)


def test_error_response_body():
    response = respond_with_error(400, "Invalid video ID", None)
    assert response.status_code == 400
    assert json.loads(response.get_data(as_text=True)) == {"error": "Invalid video ID"}


def test_server_error_is_logged(caplog):
    with caplog.at_level(logging.ERROR, logger="tubely.responses"):
        response = respond_with_error(503, "boom", RuntimeError("disk full"))
    messages = [record.getMessage() for record in caplog.records]
    assert response.status_code == 503
    assert "disk full" in messages
    assert "Responding with 5XX error: boom" in messages


def test_client_error_not_logged_as_5xx(caplog):
    with caplog.at_level(logging.ERROR, logger="tubely.responses"):
        respond_with_error(404, "Thumbnail not found")
    assert not any("5XX" in record.getMessage() for record in caplog.records)


def test_cache_middleware_adds_header():
    inner = Response("hello", mimetype="text/plain")
    client = Client(cache_middleware(inner))
    response = client.get("/")
    assert response.headers["Cache-Control"] == "max-age=3600"
    assert response.data == b"hello"


def test_cache_middleware_replaces_existing_header():
    inner = Response("hello", headers={"Cache-Control": "no-store"})
    client = Client(cache_middleware(inner))
    response = client.get("/")
    assert response.headers.getlist("Cache-Control") == ["max-age=3600"]