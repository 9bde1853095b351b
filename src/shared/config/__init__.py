"""
ProofChain - Shared Configuration
"""

from .settings import Settings, get_settings, settings
from .clients import USER_AGENT, build_timeout, http_client

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "USER_AGENT",
    "build_timeout",
    "http_client",
]
