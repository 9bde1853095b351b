"""
Checker Base
============

チェッカー（プラグイン）の基底クラス

- BaseChecker: 全チェッカー共通の契約（validate_input / process / get_info）
- ModelBackedChecker: AIバックエンドを呼び出し、JSON応答を指摘一覧に変換する
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import structlog

from src.llm.manager import ModelManager
from src.review.extractor import extract_json_candidate
from src.review.models import (
    SCHEMA_VERSION,
    ChangeRecord,
    Severity,
    StageInput,
    StageOutput,
    now_iso,
)


logger = structlog.get_logger(__name__)


class BaseChecker(ABC):
    """チェッカー基底クラス"""

    description: str = ""
    version: str = "1.0.0"

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        """
        Args:
            config: チェッカー設定（PluginSpec.options 由来）
        """
        self.config: dict[str, Any] = dict(config or {})
        self.name: str = self.config.get("name") or type(self).__name__
        self.description = self.config.get("description", self.description)
        self.version = self.config.get("version", self.version)

    def validate_input(self, data: Any) -> bool:
        """入力が文字列の text フィールドを持つか"""
        if isinstance(data, Mapping):
            text = data.get("text")
        else:
            text = getattr(data, "text", None)
        return isinstance(text, str)

    @abstractmethod
    async def process(self, data: StageInput) -> StageOutput:
        """
        テキストを処理

        Args:
            data: ステージ入力（text / context / metadata）

        Returns:
            StageOutput（text / changes / metadata）
        """

    def get_info(self) -> dict[str, Any]:
        """チェッカー情報"""
        public_config = {k: v for k, v in self.config.items() if k not in ("api_key", "apiKey")}
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "config": public_config,
        }

    def format_output(
        self,
        text: str,
        changes: Optional[list[ChangeRecord]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> StageOutput:
        """標準出力形式に整形"""
        return StageOutput(
            text=text,
            changes=list(changes or []),
            metadata={
                **(metadata or {}),
                "processedBy": self.name,
                "processedAt": now_iso(),
                "schemaVersion": SCHEMA_VERSION,
            },
        )


# ==============================================
# AI Checker
# ==============================================

@dataclass
class ParsedReview:
    """AI応答の解析結果"""
    revised_text: str
    changes: list[ChangeRecord]
    summary: str
    analysis: str
    stats: dict[str, Any] = field(default_factory=dict)
    parse_error: Optional[str] = None


class ModelBackedChecker(BaseChecker):
    """AIバックエンドを利用するチェッカー

    プロンプト生成 → バックエンド呼び出し → JSON抽出 → 指摘一覧化。
    JSON解析失敗はローカルで回復し（原文 + error指摘1件）、
    バックエンドのエラー（認証・未登録・HTTPエラー等）はそのまま送出する。
    """

    default_issue_type: str = "grammar"
    default_description: str = "语法问题"
    temperature: float = 0.3

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        model_manager: Optional[ModelManager] = None,
    ):
        """
        Args:
            config: チェッカー設定（modelName / apiKey / temperature 等）
            model_manager: バックエンドアダプタ（省略時は設定から生成）
        """
        super().__init__(config)
        self.model_manager = model_manager or ModelManager()
        self.model_name: str = (
            self.config.get("model_name") or self.config.get("modelName") or "deepseek"
        )
        if "temperature" in self.config:
            self.temperature = float(self.config["temperature"])

        api_key = self.config.get("api_key") or self.config.get("apiKey")
        if api_key:
            self.model_manager.set_api_key(self.model_name, api_key)

    async def call_model(self, prompt: str) -> str:
        return await self.model_manager.call(
            self.model_name,
            prompt,
            temperature=self.temperature,
        )

    def issue_to_change(self, issue: Mapping[str, Any]) -> ChangeRecord:
        """AIの issue 1件を ChangeRecord に変換"""
        line = issue.get("line")
        return ChangeRecord(
            type=str(issue.get("type") or self.default_issue_type),
            position=f"行{line}" if line else "未知位置",
            original=str(issue.get("original") or ""),
            revised=str(issue.get("revised") or ""),
            description=str(issue.get("description") or self.default_description),
            severity=Severity.coerce(issue.get("severity")),
        )

    def parse_ai_response(self, ai_response: str, original_text: str) -> ParsedReview:
        """
        AI応答を解析

        Args:
            ai_response: AI応答テキスト
            original_text: ステージ入力テキスト

        Returns:
            ParsedReview（解析失敗時は原文 + error指摘）
        """
        candidate = extract_json_candidate(ai_response)
        try:
            parsed = json.loads(candidate.strip())
            if not isinstance(parsed, dict):
                raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        except ValueError as e:
            logger.warning(
                "Failed to parse AI response as JSON",
                checker=self.name,
                error=str(e),
                response_preview=ai_response[:200],
            )
            return ParsedReview(
                revised_text=original_text,
                changes=[
                    ChangeRecord(
                        type="error",
                        position="系统",
                        description=f"JSON解析失败: {e}",
                        severity=Severity.HIGH,
                    )
                ],
                summary=f"解析错误: {e}",
                analysis="AI返回了无效的JSON格式",
                stats={"totalIssues": 0},
                parse_error=str(e),
            )

        revised_text = parsed.get("revisedText")
        if not isinstance(revised_text, str) or not revised_text:
            revised_text = original_text

        raw_issues = parsed.get("issues")
        issues = [i for i in raw_issues if isinstance(i, dict)] if isinstance(raw_issues, list) else []
        changes = [self.issue_to_change(issue) for issue in issues]

        stats = parsed.get("stats")
        return ParsedReview(
            revised_text=revised_text,
            changes=changes,
            summary=str(parsed.get("summary") or "处理完成"),
            analysis="\n".join(f"{c.position}-{c.description}" for c in changes),
            stats=stats if isinstance(stats, dict) else {"totalIssues": len(changes)},
        )
