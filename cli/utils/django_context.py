"""Django bootstrap for CLI commands."""

import os
from functools import wraps

import django
from django.apps import apps

DEFAULT_SETTINGS_MODULE = "ragskin.settings"


def setup_django(settings_module: str = DEFAULT_SETTINGS_MODULE) -> None:
    """Configure Django once; an already exported DJANGO_SETTINGS_MODULE wins."""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", settings_module)
    if not apps.ready:
        django.setup()


def with_django(func):
    """Run the command with Django configured (settings, apps, logging)."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        setup_django()
        return func(*args, **kwargs)

    return wrapper
