"""
Webhook Notifier
================

処理結果をリモートWebhookへ非同期送信する（fire-and-forget）

送信失敗はログに記録するのみで、呼び出し元には伝播しない。
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import structlog

from src.shared.config import Settings, get_settings, http_client


logger = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: Any, utc_offset_hours: int = 8) -> Any:
    """ISO文字列 / datetime を固定オフセットの "YYYY-MM-DD HH:MM:SS" に変換"""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone(timedelta(hours=utc_offset_hours))).strftime(TIMESTAMP_FORMAT)


class WebhookNotifier:
    """リモートWebhook通知"""

    def __init__(
        self,
        url: Optional[str] = None,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            url: 送信先URL（省略時は REMOTE_WEBHOOK_URL、未設定なら無効）
            settings: 設定
            client: 共有AsyncClient
        """
        webhook = (settings or get_settings()).webhook
        self.url = url if url is not None else webhook.url
        self.utc_offset_hours = webhook.utc_offset_hours
        self.timeout_seconds = webhook.timeout_seconds
        self._client = client
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def build_payload(
        self,
        *,
        original_text: str,
        final_text: str,
        errors: list[dict[str, Any]],
        processing_start: Any,
        processing_end: Any,
        summary: str,
    ) -> dict[str, Any]:
        """送信ペイロードを作成"""
        return {
            "originalText": original_text,
            "finalText": final_text,
            "errors": errors,
            "processingStart": format_timestamp(processing_start, self.utc_offset_hours),
            "processingEnd": format_timestamp(processing_end, self.utc_offset_hours),
            "summary": summary,
        }

    def dispatch(self, payload: dict[str, Any]) -> Optional[asyncio.Task]:
        """バックグラウンドで送信（完了を待たない）"""
        if not self.enabled:
            return None
        task = asyncio.get_running_loop().create_task(self.send(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def send(self, payload: dict[str, Any]) -> bool:
        """送信（失敗時は False、例外は送出しない）"""
        try:
            async with http_client(self.timeout_seconds, self._client) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Failed to send data to remote URL", url=self.url, error=str(e))
            return False

        if not response.is_success:
            logger.error(
                "Remote URL responded with error status",
                url=self.url,
                status=response.status_code,
            )
            return False

        logger.info("Sent data to remote URL", url=self.url)
        return True

    async def drain(self) -> None:
        """送信中タスクの完了を待つ（シャットダウン・テスト用）"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
