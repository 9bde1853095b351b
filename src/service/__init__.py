"""
ProofChain - Service Package
============================

HTTP層・MCP・CLIから呼び出されるサービス境界
"""

from .review import ReviewService, ServiceResponse
from .routes import HttpMethod, ROUTES, dispatch
from .webhook import WebhookNotifier, format_timestamp

__all__ = [
    "ReviewService",
    "ServiceResponse",
    "HttpMethod",
    "ROUTES",
    "dispatch",
    "WebhookNotifier",
    "format_timestamp",
]
