"""ASGI entrypoint for the Auranut API."""

from auranut.api.app import create_app
from auranut.containers import build_container

app = create_app(build_container())
