"""ASGI entrypoint for the meal subscriptions API."""

from meal_subscriptions.api.app import create_app
from meal_subscriptions.containers import build_container

app = create_app(build_container())
