"""JSON response helpers and the caching middleware."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Optional

from werkzeug.wrappers import Response

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
CACHE_CONTROL = "max-age=3600"

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


def _jsonable(payload: Any) -> Any:
    """Turn records into plain JSON-compatible structures."""
    to_dict = getattr(payload, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(payload, (list, tuple)):
        return [_jsonable(item) for item in payload]
    if isinstance(payload, dict):
        return {key: _jsonable(value) for key, value in payload.items()}
    return payload


def respond_with_json(code: int, payload: Any) -> Response:
    """Build a JSON response; an unserialisable payload gives an empty 500."""
    try:
        body = json.dumps(
            _jsonable(payload),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        logger.error("Error marshalling JSON: %s", exc)
        return Response(b"", status=500, content_type=JSON_CONTENT_TYPE)
    return Response(body, status=code, content_type=JSON_CONTENT_TYPE)


def respond_with_error(
    code: int, msg: str, err: Optional[BaseException] = None
) -> Response:
    """Log the failure and build a JSON body of the form ``{"error": msg}``."""
    if err is not None:
        logger.error("%s", err)
    if code > 499:
        logger.error("Responding with 5XX error: %s", msg)
    return respond_with_json(code, {"error": msg})


def cache_middleware(app: WSGIApp) -> WSGIApp:
    """Wrap a WSGI app so every response carries ``Cache-Control: max-age=3600``."""

    def wrapped(environ: dict, start_response: Callable) -> Iterable[bytes]:
        def start(status: str, headers: list, exc_info: Any = None) -> Any:
            kept = [(name, value) for name, value in headers if name.lower() != "cache-control"]
            kept.append(("Cache-Control", CACHE_CONTROL))
            return start_response(status, kept, exc_info)

        return app(environ, start)

    return wrapped