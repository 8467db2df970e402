"""The Tubely WSGI application, its configuration and its command."""

from __future__ import annotations

import argparse
import logging
import os
import posixpath
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional
from uuid import UUID

from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException, NotFound
from werkzeug.routing import Map, Rule
from werkzeug.security import safe_join
from werkzeug.utils import redirect, send_from_directory
from werkzeug.wrappers import Request, Response

from .database import Client
from .responses import cache_middleware, respond_with_error, respond_with_json

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a required setting is missing."""


_SETTINGS = (
    ("db_path", "DB_PATH", "DB_URL must be set"),
    ("jwt_secret", "JWT_SECRET", "JWT_SECRET environment variable is not set"),
    ("platform", "PLATFORM", "PLATFORM environment variable is not set"),
    ("filepath_root", "FILEPATH_ROOT", "FILEPATH_ROOT environment variable is not set"),
    ("assets_root", "ASSETS_ROOT", "ASSETS_ROOT environment variable is not set"),
    ("s3_bucket", "S3_BUCKET", "S3_BUCKET environment variable is not set"),
    ("s3_region", "S3_REGION", "S3_REGION environment variable is not set"),
    ("s3_cf_distribution", "S3_CF_DISTRO", "S3_CF_DISTRO environment variable is not set"),
    ("port", "PORT", "PORT environment variable is not set"),
)


@dataclass(frozen=True)
class Config:
    """Server settings, normally read from the environment."""

    db_path: str
    jwt_secret: str
    platform: str
    filepath_root: str
    assets_root: str
    s3_bucket: str
    s3_region: str
    s3_cf_distribution: str
    port: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Read every setting; a missing or empty one raises :class:`ConfigError`."""
        if environ is None:
            environ = os.environ
        values = {}
        for field_name, variable, message in _SETTINGS:
            value = environ.get(variable, "")
            if not value:
                raise ConfigError(message)
            values[field_name] = value
        return cls(**values)

    def ensure_assets_dir(self) -> None:
        """Create the assets directory if it does not exist yet."""
        if not os.path.exists(self.assets_root):
            os.mkdir(self.assets_root, 0o755)


@dataclass
class Thumbnail:
    """An uploaded thumbnail image kept in memory."""

    data: bytes
    media_type: str


WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


def _static_response(root: str, rel: str, request: Request) -> Any:
    target = safe_join(root, rel) if rel else root
    if target is None:
        return NotFound()
    if os.path.isdir(target):
        if rel and not request.path.endswith("/"):
            return redirect(request.path + "/", code=301)
        rel = posixpath.join(rel, "index.html") if rel else "index.html"
    try:
        return send_from_directory(root, rel, request.environ)
    except NotFound as exc:
        return exc


def _file_server(root: str, prefix: str) -> WSGIApp:
    """Serve files below ``root`` for request paths starting with ``prefix``."""

    def serve(environ: dict, start_response: Callable) -> Iterable[bytes]:
        request = Request(environ)
        rel = request.path[len(prefix):].lstrip("/")
        return _static_response(root, rel, request)(environ, start_response)

    return serve


class App:
    """WSGI application serving the Tubely API and static files."""

    def __init__(self, config: Config, db: Client) -> None:
        self.config = config
        self.db = db
        self.thumbnails: dict[UUID, Thumbnail] = {}
        self._app_files = _file_server(config.filepath_root, "/app")
        self._asset_files = cache_middleware(_file_server(config.assets_root, "/assets"))
        self._url_map = Map(
            [
                Rule("/app/", endpoint="app_files"),
                Rule("/app/<path:path>", endpoint="app_files"),
                Rule("/assets/", endpoint="asset_files"),
                Rule("/assets/<path:path>", endpoint="asset_files"),
                Rule("/api/videos/<video_id>", methods=["GET"], endpoint="video_get"),
                Rule("/api/thumbnails/<video_id>", methods=["GET"], endpoint="thumbnail_get"),
                Rule("/admin/reset", methods=["POST"], endpoint="reset"),
            ]
        )
        self._handlers: dict[str, Callable[..., Any]] = {
            "app_files": lambda request, path="": self._app_files,
            "asset_files": lambda request, path="": self._asset_files,
            "video_get": self.handle_video_get,
            "thumbnail_get": self.handle_thumbnail_get,
            "reset": self.handle_reset,
        }

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        request = Request(environ)
        adapter = self._url_map.bind_to_environ(environ)
        try:
            endpoint, values = adapter.match()
        except HTTPException as exc:
            return exc(environ, start_response)
        response = self._handlers[endpoint](request, **values)
        return response(environ, start_response)

    def handle_thumbnail_get(self, request: Request, video_id: str) -> Response:
        try:
            key = UUID(video_id)
        except ValueError as exc:
            return respond_with_error(400, "Invalid video ID", exc)

        thumbnail = self.thumbnails.get(key)
        if thumbnail is None:
            return respond_with_error(404, "Thumbnail not found", None)

        response = Response(thumbnail.data, status=200, content_type=thumbnail.media_type)
        response.headers["Content-Length"] = str(len(thumbnail.data))
        return response

    def handle_video_get(self, request: Request, video_id: str) -> Response:
        try:
            key = UUID(video_id)
        except ValueError as exc:
            return respond_with_error(400, "Invalid video ID", exc)

        try:
            video = self.db.get_video(key)
        except Exception as exc:  # any storage failure reads as "not found"
            return respond_with_error(404, "Couldn't get video", exc)
        if video is None:
            return respond_with_error(404, "Couldn't get video", None)

        return respond_with_json(200, video)

    def handle_reset(self, request: Request) -> Response:
        if self.config.platform != "dev":
            return Response(
                "Reset is only allowed in dev environment.",
                status=403,
                mimetype="text/plain",
            )
        try:
            self.db.reset()
        except Exception as exc:
            return respond_with_error(500, "Couldn't reset database", exc)
        return Response("Database reset to initial state", status=200, mimetype="text/plain")


def main(argv: Optional[list[str]] = None) -> None:
    """Load settings, open the database and serve until interrupted."""
    from werkzeug.serving import run_simple

    parser = argparse.ArgumentParser(prog="tubely", description="Serve the Tubely API.")
    parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    load_dotenv(".env")

    try:
        config = Config.from_env()
    except ConfigError as exc:
        logger.critical("%s", exc)
        raise SystemExit(1) from exc

    try:
        db = Client(config.db_path)
    except Exception as exc:
        logger.critical("Couldn't connect to database: %s", exc)
        raise SystemExit(1) from exc

    try:
        config.ensure_assets_dir()
    except OSError as exc:
        logger.critical("Couldn't create assets directory: %s", exc)
        raise SystemExit(1) from exc

    try:
        port = int(config.port)
    except ValueError as exc:
        logger.critical("Invalid port: %s", config.port)
        raise SystemExit(1) from exc

    logger.info("Serving on: http://localhost:%s/app/", config.port)
    with db:
        run_simple("0.0.0.0", port, App(config, db))