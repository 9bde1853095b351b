"""
ProofChain - Checkers Package
=============================

AI核稿チェッカー
- GrammarCheckPlugin: 語病チェック
- PersonnelCheckPlugin: 人員情報照合
"""

from .base import BaseChecker, ModelBackedChecker, ParsedReview
from .registry import (
    checker_catalog,
    create_checker,
    get_checker_class,
    register_checker,
    registered_types,
)
from .grammar import GrammarCheckPlugin
from .personnel import PersonnelCheckPlugin

__all__ = [
    "BaseChecker",
    "ModelBackedChecker",
    "ParsedReview",
    "GrammarCheckPlugin",
    "PersonnelCheckPlugin",
    "checker_catalog",
    "create_checker",
    "get_checker_class",
    "register_checker",
    "registered_types",
]
