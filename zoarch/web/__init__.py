"""HTTP interface to the specimen catalog."""

from .api import create_app, create_app_from_config

__all__ = ["create_app", "create_app_from_config"]
