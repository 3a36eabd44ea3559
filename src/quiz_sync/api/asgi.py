"""ASGI entrypoint for the quiz sync API."""

from quiz_sync.api.app import create_app
from quiz_sync.containers import build_container

app = create_app(build_container())
