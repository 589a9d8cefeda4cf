"""Request-scoped access to the objects built by create_app"""

from fastapi import Request

from .config import AppConfig
from .email_service import Notifier


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier
