"""
stackgraph configuration.

Pydantic-based settings loaded from STACKGRAPH_* environment variables
and an optional .env file.
"""

from stackgraph.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
