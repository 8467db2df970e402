import dataclasses
import json
from uuid import UUID, uuid4

import pytest
from werkzeug.test import Client as TestClient

from tubely.app import App, Config, ConfigError, Thumbnail
from tubely.database import Client
from tubely.models import CreateUserParams, CreateVideoParams

ENV = {
    "DB_PATH": "tubely.db",
    "JWT_SECRET": "secret",
    "PLATFORM": "dev",
    "FILEPATH_ROOT": "./app",
    "ASSETS_ROOT": "./assets",
    "S3_BUCKET": "bucket",
    "S3_REGION": "region",
    "S3_CF_DISTRO": "distro",
    "PORT": "8091",
}


@dataclasses.dataclass
class Setup:
    app: App
    db: Client
    client: TestClient
    config: Config


@pytest.fixture
def setup(tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text("<h1>Tubely</h1>")
    (site / "docs").mkdir()
    (site / "docs" / "index.html").write_text("docs page")
    assets = tmp_path / "assets"
    assets.mkdir()
    (assets / "clip.txt").write_text("asset body")
    env = dict(ENV, DB_PATH=str(tmp_path / "tubely.db"),
               FILEPATH_ROOT=str(site), ASSETS_ROOT=str(assets))
    config = Config.from_env(env)
    db = Client(config.db_path)
    app = App(config, db)
    yield Setup(app=app, db=db, client=TestClient(app), config=config)
    db.close()


def _make_video(db):
    password = "password"
    user = db.create_user(CreateUserParams(email="user@example.com", password=password))
    return db.create_video(CreateVideoParams(title="Clip", description="desc", user_id=user.id))


def test_from_env_reads_every_setting():
    config = Config.from_env(ENV)
    assert config.db_path == "tubely.db"
    assert config.platform == "dev"
    assert config.s3_cf_distribution == "distro"
    assert config.port == "8091"


@pytest.mark.parametrize(
    "variable,message",
    [
        ("DB_PATH", "DB_URL must be set"),
        ("PORT", "PORT environment variable is not set"),
        ("S3_CF_DISTRO", "S3_CF_DISTRO environment variable is not set"),
    ],
)
def test_from_env_missing_setting(variable, message):
    env = {key: value for key, value in ENV.items() if key != variable}
    with pytest.raises(ConfigError, match=message):
        Config.from_env(env)


def test_from_env_empty_setting_is_missing():
    with pytest.raises(ConfigError, match="PLATFORM environment variable is not set"):
        Config.from_env(dict(ENV, PLATFORM=""))


def test_ensure_assets_dir_creates_and_is_idempotent(tmp_path):
    target = tmp_path / "new_assets"
    config = Config.from_env(dict(ENV, ASSETS_ROOT=str(target)))
    config.ensure_assets_dir()
    config.ensure_assets_dir()
    assert target.is_dir()


def test_video_get_returns_video(setup):
    video = _make_video(setup.db)
    response = setup.client.get(f"/api/videos/{video.id}")
    assert response.status_code == 200
    body = json.loads(response.data)
    assert body["id"] == str(video.id)
    assert body["title"] == "Clip"


def test_video_get_invalid_id(setup):
    response = setup.client.get("/api/videos/not-a-uuid")
    assert response.status_code == 400
    assert json.loads(response.data) == {"error": "Invalid video ID"}


def test_video_get_unknown_id(setup):
    response = setup.client.get(f"/api/videos/{uuid4()}")
    assert response.status_code == 404
    assert json.loads(response.data) == {"error": "Couldn't get video"}


def test_video_route_rejects_other_methods(setup):
    response = setup.client.put(f"/api/videos/{uuid4()}")
    assert response.status_code == 405


def test_thumbnail_get_serves_stored_image(setup):
    video_id = UUID(int=7)
    data = b"\x89PNG image bytes"
    setup.app.thumbnails[video_id] = Thumbnail(data=data, media_type="image/png")
    response = setup.client.get(f"/api/thumbnails/{video_id}")
    assert response.status_code == 200
    assert response.data == data
    assert response.headers["Content-Type"] == "image/png"
    assert response.headers["Content-Length"] == str(len(data))


def test_thumbnail_get_missing(setup):
    response = setup.client.get(f"/api/thumbnails/{uuid4()}")
    assert response.status_code == 404
    assert json.loads(response.data) == {"error": "Thumbnail not found"}


def test_thumbnail_get_invalid_id(setup):
    response = setup.client.get("/api/thumbnails/xyz")
    assert response.status_code == 400
    assert json.loads(response.data) == {"error": "Invalid video ID"}


def test_reset_in_dev_clears_database(setup):
    video = _make_video(setup.db)
    response = setup.client.post("/admin/reset")
    assert response.status_code == 200
    assert response.data == b"Database reset to initial state"
    assert setup.db.get_video(video.id) is None
    assert setup.db.get_users() == []


def test_reset_forbidden_outside_dev(setup):
    video = _make_video(setup.db)
    config = dataclasses.replace(setup.config, platform="production")
    client = TestClient(App(config, setup.db))
    response = client.post("/admin/reset")
    assert response.status_code == 403
    assert response.data == b"Reset is only allowed in dev environment."
    assert setup.db.get_video(video.id) is not None
    assert setup.db.get_video(video.id).title == "Clip"


def test_app_files_serve_index(setup):
    response = setup.client.get("/app/")
    assert response.status_code == 200
    assert response.data == b"<h1>Tubely</h1>"


def test_app_files_serve_named_file(setup):
    response = setup.client.get("/app/index.html")
    assert response.data == b"<h1>Tubely</h1>"


def test_app_subdirectory_redirects_then_serves_index(setup):
    redirected = setup.client.get("/app/docs")
    assert redirected.status_code == 301
    assert redirected.headers["Location"].endswith("/app/docs/")
    response = setup.client.get("/app/docs/")
    assert response.data == b"docs page"


def test_app_without_slash_redirects(setup):
    response = setup.client.get("/app")
    assert 300 <= response.status_code < 400
    assert response.headers["Location"].endswith("/app/")


def test_app_missing_file(setup):
    response = setup.client.get("/app/missing.html")
    assert response.status_code == 404


def test_assets_are_cached(setup):
    response = setup.client.get("/assets/clip.txt")
    assert response.status_code == 200
    assert response.data == b"asset body"
    assert response.headers["Cache-Control"] == "max-age=3600"


def test_missing_asset_still_carries_cache_header(setup):
    response = setup.client.get("/assets/none.txt")
    assert response.status_code == 404
    assert response.headers["Cache-Control"] == "max-age=3600"


def test_asset_path_traversal_rejected(setup):
    response = setup.client.get("/assets/../tubely.db")
    assert response.status_code == 404