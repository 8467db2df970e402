# tubely

tubely is a small web service that keeps video metadata in a SQLite
database and serves video thumbnails, static application files and
uploaded assets. It is a plain WSGI application, so it can be run by its
own command or mounted in any WSGI server.

## Running

Start the server with:

    tubely

The command takes no options besides `--help`. On start-up it reads a
`.env` file in the current directory, if there is one, and then the
process environment. Every one of these variables must be set and
non-empty, or the command logs a message naming the missing one and exits
with status 1:

| Variable        | Meaning                                              |
|-----------------|------------------------------------------------------|
| `DB_PATH`       | Path of the SQLite database file                     |
| `JWT_SECRET`    | Required, but not used by any route yet              |
| `PLATFORM`      | Deployment platform; `dev` enables the reset route   |
| `FILEPATH_ROOT` | Directory served under `/app/`                       |
| `ASSETS_ROOT`   | Directory served under `/assets/`; created if absent |
| `S3_BUCKET`     | Required, but not used by any route yet              |
| `S3_REGION`     | Required, but not used by any route yet              |
| `S3_CF_DISTRO`  | Required, but not used by any route yet              |
| `PORT`          | Port to listen on (all interfaces)                   |

A minimal `.env` for local work:

    DB_PATH=tubely.db
    JWT_SECRET=secret
    PLATFORM=dev
    FILEPATH_ROOT=./app
    ASSETS_ROOT=./assets
    S3_BUCKET=placeholder
    S3_REGION=placeholder
    S3_CF_DISTRO=placeholder
    PORT=8091

The database tables (`users`, `refresh_tokens`, `videos`) are created
automatically the first time the service connects.

## Routes

- `/app/...` — static files from `FILEPATH_ROOT`; a directory is answered
  with its `index.html`.
- `/assets/...` — files from `ASSETS_ROOT`, sent with
  `Cache-Control: max-age=3600`.
- `GET /api/videos/{videoID}` — the metadata of one video as JSON.
- `GET /api/thumbnails/{videoID}` — the stored thumbnail image, with its
  content type and length.
- `POST /admin/reset` — empties every table; allowed only when
  `PLATFORM` is `dev`, otherwise answered with `403` and a plain-text
  message.

Errors from the API routes are answered with a JSON body of the form
`{"error": "message"}`: `400` for a malformed video ID, `404` for an
unknown video or thumbnail (and for a failed video lookup), `500` when a
reset fails.

## Using it from Python

    import os

    from tubely.app import App, Config
    from tubely.database import Client

    config = Config.from_env(os.environ)
    config.ensure_assets_dir()
    application = App(config, Client(config.db_path))

`application` is a WSGI callable and can be handed to any WSGI server.
`Config.from_env` raises `tubely.app.ConfigError` when a setting is
missing. Thumbnails are held in memory in `application.thumbnails`, a
dict from video `UUID` to `tubely.app.Thumbnail(data, media_type)`;
they are lost when the process stops.

The storage layer is available on its own as `tubely.database.Client`,
which can be used as a context manager. It creates, reads, updates and
deletes users, refresh tokens and videos; lookups that find nothing
return `None`, and database failures raise `sqlite3.Error`. Its records
are the dataclasses in `tubely.models` (`User`, `Video`, `RefreshToken`,
and the `Create...Params` used to create them); each record has a
`to_dict()` method that gives its JSON form. The helpers
`respond_with_json`, `respond_with_error` and `cache_middleware` live in
`tubely.responses`.

## What it does not do

The HTTP service has no routes for signing up, logging in, refreshing or
revoking tokens, creating, listing or deleting videos, or uploading
thumbnails or video files. Users, videos and refresh tokens can only be
created through `tubely.database.Client`, and thumbnails only by filling
`App.thumbnails` from Python. Nothing checks access tokens, and nothing
is stored in or served from a storage bucket.

## Tests

The test suite uses pytest and lives in `tests/`:

    pip install -e .[test]
    pytest