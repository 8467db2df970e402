"""Video metadata and thumbnail service: a SQLite store and a WSGI application."""

__version__ = "0.1.0"