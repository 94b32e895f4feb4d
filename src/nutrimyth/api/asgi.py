"""ASGI entrypoint for the NutriMyth API."""

from nutrimyth.api.app import create_app
from nutrimyth.containers import build_container

app = create_app(build_container())
