"""Discloser: expiring, view-limited sharing of health-test results."""

from .main import AppDependencies, create_app
from .settings import DiscloserSettings

__all__ = [
    "AppDependencies",
    "DiscloserSettings",
    "create_app",
]
