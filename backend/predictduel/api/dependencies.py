"""FastAPI dependencies exposing the service registry."""

from fastapi import Request

from predictduel.config import Settings
from predictduel.services.registry import ServiceRegistry


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
