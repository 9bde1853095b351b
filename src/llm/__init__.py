"""
ProofChain - LLM Backends
"""

from .backends import BackendConfig, WireFormat
from .manager import ModelManager, default_backends

__all__ = [
    "BackendConfig",
    "WireFormat",
    "ModelManager",
    "default_backends",
]
