"""
ProofChain - Roster Package
===========================

人員名簿（参照データ）の取得・キャッシュ
"""

from .cache import RosterCache, RosterSnapshot, get_roster_cache
from .parser import normalize_roster, parse_local_roster

__all__ = [
    "RosterCache",
    "RosterSnapshot",
    "get_roster_cache",
    "normalize_roster",
    "parse_local_roster",
]
