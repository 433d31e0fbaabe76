"""ASGI entrypoint (uvicorn rfcbot.api.app:app); role from APP_ROLE."""

from rfcbot.api.factory import create_app

app = create_app()
