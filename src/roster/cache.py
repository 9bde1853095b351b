"""
Roster Cache
============

外部取得した人員名簿の有効期限付きキャッシュ

- 単一スロット（ソースURL + 取得時刻）を保持し、TTL内はそのまま返す
- 期限切れ・未取得の場合はHTTP GETで取得し、丸ごと置き換える
- 同時ミス時の取得は asyncio.Lock で1回にまとめる
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Callable, Optional

import httpx
import structlog

from src.shared.config import get_settings, http_client
from src.review.errors import (
    RosterConfigurationError,
    RosterFetchError,
    RosterTimeoutError,
)
from src.review.models import RosterEntry
from .parser import normalize_roster


logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass(frozen=True)
class RosterSnapshot:
    """キャッシュエントリ"""
    source_url: str
    records: tuple[RosterEntry, ...]
    fetched_at: float
    fetched_at_wall: datetime


class RosterCache:
    """人員名簿キャッシュ"""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        timeout_seconds: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: 有効期限（秒）
            timeout_seconds: 取得タイムアウト（省略時は設定値）
            client: 共有AsyncClient（省略時は呼び出しごとに生成）
            clock: 単調時計（テスト用に差し替え可能）
        """
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else get_settings().roster.timeout_seconds
        )
        self._client = client
        self._clock = clock
        self._snapshot: Optional[RosterSnapshot] = None
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _loop_lock(self) -> asyncio.Lock:
        """実行中のイベントループ用のロック（ループが変われば作り直す）"""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def _fresh(self, source_url: str) -> Optional[RosterSnapshot]:
        snapshot = self._snapshot
        if snapshot is None or snapshot.source_url != source_url:
            return None
        if self._clock() - snapshot.fetched_at >= self.ttl_seconds:
            return None
        return snapshot

    async def get(self, source_url: Optional[str]) -> list[RosterEntry]:
        """
        名簿を取得（TTL内ならキャッシュを返す）

        Args:
            source_url: 名簿ソースURL

        Returns:
            RosterEntry リスト

        Raises:
            RosterConfigurationError: URL未設定
            RosterFetchError: 非2xx応答・不正なJSON・通信失敗
            RosterTimeoutError: タイムアウト
        """
        if not source_url:
            raise RosterConfigurationError()

        snapshot = self._fresh(source_url)
        if snapshot is not None:
            return list(snapshot.records)

        async with self._loop_lock():
            # 待機中に別タスクが取得済みなら再利用
            snapshot = self._fresh(source_url)
            if snapshot is not None:
                return list(snapshot.records)

            raw_data = await self._fetch(source_url)
            records = tuple(normalize_roster(raw_data))
            self._snapshot = RosterSnapshot(
                source_url=source_url,
                records=records,
                fetched_at=self._clock(),
                fetched_at_wall=datetime.now(UTC),
            )
            logger.info("Fetched personnel records", count=len(records), source=source_url)
            return list(records)

    async def _fetch(self, source_url: str) -> Any:
        logger.info("Fetching personnel data", source=source_url)
        try:
            async with http_client(self.timeout_seconds, self._client) as client:
                response = await client.get(
                    source_url,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise RosterTimeoutError(source_url, self.timeout_seconds) from e
        except httpx.HTTPError as e:
            raise RosterFetchError(str(e)) from e

        if not response.is_success:
            raise RosterFetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RosterFetchError(f"invalid JSON payload: {e}", status=response.status_code) from e

    def invalidate(self) -> None:
        """キャッシュを破棄し、次回 get で再取得させる"""
        self._snapshot = None

    @property
    def last_fetched(self) -> Optional[datetime]:
        return self._snapshot.fetched_at_wall if self._snapshot else None

    def status(self) -> dict[str, Any]:
        """キャッシュ状態"""
        snapshot = self._snapshot
        return {
            "hasCachedData": snapshot is not None,
            "sourceUrl": snapshot.source_url if snapshot else None,
            "recordCount": len(snapshot.records) if snapshot else 0,
            "lastFetchTime": snapshot.fetched_at_wall.isoformat() if snapshot else None,
            "cacheExpiry": self.ttl_seconds,
            "isExpired": snapshot is None or self._clock() - snapshot.fetched_at >= self.ttl_seconds,
        }


_shared_caches: dict[float, RosterCache] = {}


def get_roster_cache(ttl_seconds: Optional[float] = None) -> RosterCache:
    """プロセス共有の名簿キャッシュ（TTLごとに1つ）"""
    ttl = ttl_seconds if ttl_seconds is not None else get_settings().roster.cache_ttl_seconds
    cache = _shared_caches.get(ttl)
    if cache is None:
        cache = _shared_caches[ttl] = RosterCache(ttl)
    return cache
