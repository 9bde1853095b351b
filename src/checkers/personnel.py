"""
Personnel Checker
=================

人員情報照合: テキスト中の人名と職務を名簿と照合する
"""

from typing import Any, Mapping, Optional

import structlog

from src.llm.manager import ModelManager
from src.review.errors import NoReferenceDataError
from src.review.models import ChangeRecord, RosterEntry, StageInput, StageOutput
from src.roster import RosterCache, get_roster_cache, parse_local_roster
from src.shared.config import get_settings
from .base import ModelBackedChecker
from .prompts import CheckerPrompts
from .registry import register_checker


logger = structlog.get_logger(__name__)


def _option(config: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if config.get(key) is not None:
            return config[key]
    return default


@register_checker("personnel")
class PersonnelCheckPlugin(ModelBackedChecker):
    """人员信息核对插件"""

    description = "核对文本中的人员姓名和职务信息是否正确"
    default_issue_type = "personnel"
    default_description = "人员信息问题"
    temperature = 0.1

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        model_manager: Optional[ModelManager] = None,
        roster_cache: Optional[RosterCache] = None,
    ):
        """
        Args:
            config: personnelApiUrl / cacheExpiry(ms) / useLocalPersonnel / localPersonnelData 等
            model_manager: バックエンドアダプタ
            roster_cache: 名簿キャッシュ（省略時はプロセス共有キャッシュ）
        """
        super().__init__(config, model_manager)
        self.personnel_api_url: Optional[str] = _option(
            self.config, "personnel_api_url", "personnelApiUrl",
            default=get_settings().roster.api_url,
        )
        self.use_local_personnel = bool(
            _option(self.config, "use_local_personnel", "useLocalPersonnel", default=False)
        )
        self.local_personnel_data: str = _option(
            self.config, "local_personnel_data", "localPersonnelData", default=""
        )

        if roster_cache is None:
            ttl = _option(self.config, "cache_ttl_seconds")
            expiry_ms = _option(self.config, "cacheExpiry")
            if ttl is None and expiry_ms is not None:
                ttl = float(expiry_ms) / 1000
            roster_cache = get_roster_cache(ttl)
        self.roster_cache = roster_cache

    async def load_roster(self) -> list[RosterEntry]:
        """名簿を取得（ローカル名簿指定時はそちらを優先）"""
        if self.use_local_personnel:
            return parse_local_roster(self.local_personnel_data)
        return await self.roster_cache.get(self.personnel_api_url)

    def generate_prompt(self, text: str, roster: list[RosterEntry]) -> str:
        return CheckerPrompts.personnel(text, roster)

    def issue_to_change(self, issue: Mapping[str, Any]) -> ChangeRecord:
        change = super().issue_to_change(issue)
        return change.model_copy(update={
            "details": {
                "personName": str(issue.get("personName") or ""),
                "correctInfo": str(issue.get("correctInfo") or ""),
            }
        })

    async def process(self, data: StageInput) -> StageOutput:
        text = data.text
        metadata: dict[str, Any] = dict(data.metadata)

        roster = await self.load_roster()
        if not roster:
            raise NoReferenceDataError()

        prompt = self.generate_prompt(text, roster)
        ai_response = await self.call_model(prompt)
        parsed = self.parse_ai_response(ai_response, text)

        check_result = "\n".join(
            f"{c.type}-{c.details.get('personName') or '未知'}-{c.description}"
            for c in parsed.changes
        )
        last_fetch = None if self.use_local_personnel else self.roster_cache.last_fetched

        logger.info(
            "Personnel check completed",
            checker=self.name,
            roster_size=len(roster),
            issues=len(parsed.changes),
            parse_error=parsed.parse_error,
        )

        return self.format_output(
            parsed.revised_text,
            parsed.changes,
            {
                **metadata,
                "checkResult": check_result if parsed.parse_error is None else parsed.analysis,
                "statistics": parsed.summary,
                "stats": parsed.stats,
                "personnelCount": len(roster),
                "modelUsed": self.model_name,
                "dataSource": "local" if self.use_local_personnel else self.personnel_api_url,
                "lastDataFetch": last_fetch.isoformat() if last_fetch else None,
            },
        )

    def set_personnel_api_url(self, url: str) -> None:
        """名簿ソースを変更し、キャッシュを破棄"""
        self.personnel_api_url = url
        self.roster_cache.invalidate()

    def clear_cache(self) -> None:
        self.roster_cache.invalidate()

    def get_cache_status(self) -> dict[str, Any]:
        return self.roster_cache.status()
