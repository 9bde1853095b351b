"""
Review Pipeline Models
======================

レビューパイプラインのデータモデル定義

ワイヤ形式はcamelCase（``model_dump(by_alias=True)``）で出力する。
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# changes / metadata の自由形式マップに付与するキーのバージョン
SCHEMA_VERSION = "1"


class WireModel(BaseModel):
    """camelCaseエイリアス付きの基底モデル"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenWireModel(WireModel):
    """生成後に変更不可のモデル"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Severity(str, Enum):
    """重要度"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def coerce(cls, value: Any, default: Optional["Severity"] = None) -> "Severity":
        """AI応答の任意値をSeverityに丸める（不明値はdefault）"""
        default = default or cls.MEDIUM
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return default
        return default


class RunState(str, Enum):
    """パイプライン実行状態"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


# ==============================================
# Request Models
# ==============================================

class PluginSpec(WireModel):
    """チェッカー構築指定（構築後は保持しない）"""
    type: str = Field(description="チェッカー種別 (grammar / personnel / ...)")
    options: dict[str, Any] = Field(default_factory=dict, description="チェッカーオプション")


class ReviewConfig(WireModel):
    """リクエスト全体の設定"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    default_model: Optional[str] = Field(default=None, description="既定のバックエンドID")


class ReviewRequest(WireModel):
    """レビューリクエスト"""
    text: str = Field(min_length=1, description="対象テキスト")
    plugins: list[PluginSpec] = Field(default_factory=list, description="チェッカー指定（順序どおり実行）")
    config: ReviewConfig = Field(default_factory=ReviewConfig, description="リクエスト設定")


# ==============================================
# Stage I/O Models
# ==============================================

class ChangeRecord(FrozenWireModel):
    """検出された指摘1件"""
    type: str = Field(default="grammar", description="指摘種別")
    position: str = Field(default="未知位置", description="該当位置")
    original: str = Field(default="", description="修正前")
    revised: str = Field(default="", description="修正後")
    description: str = Field(default="", description="説明")
    severity: Severity = Field(default=Severity.MEDIUM, description="重要度")
    details: dict[str, Any] = Field(default_factory=dict, description="チェッカー固有の追加情報")


class StageInput(WireModel):
    """ステージに渡すコンテキストのスナップショット"""
    text: str
    context: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class StageOutput(WireModel):
    """ステージが返す差分"""
    text: str
    changes: list[ChangeRecord] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)


# ==============================================
# Result Models
# ==============================================

class StageResult(FrozenWireModel):
    """成功したステージの記録"""
    plugin_name: str = Field(description="チェッカー名")
    input_text: str = Field(description="入力テキスト")
    output_text: str = Field(description="出力テキスト")
    changes: tuple[ChangeRecord, ...] = Field(default=(), description="指摘一覧")
    metadata: dict[str, Any] = Field(default_factory=dict, description="ステージメタデータ")


class StageError(FrozenWireModel):
    """失敗したステージの記録"""
    plugin_name: str = Field(description="チェッカー名")
    error_message: str = Field(description="エラーメッセージ")
    stage_index: int = Field(ge=1, description="ステージ番号（1始まり）")
    error_type: str = Field(default="PluginProcessingError", description="例外種別")


class PipelineRunResult(FrozenWireModel):
    """パイプライン実行結果"""
    success: bool
    final_text: str
    original_text: str
    results: tuple[StageResult, ...] = ()
    errors: tuple[StageError, ...] = ()
    state: RunState = RunState.COMPLETED
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def changes(self) -> list[ChangeRecord]:
        """全ステージの指摘を実行順に連結"""
        return [change for result in self.results for change in result.changes]


class RosterEntry(FrozenWireModel):
    """名簿レコード"""
    name: str
    position: str = ""


def now_iso() -> str:
    """UTCのISO 8601タイムスタンプ"""
    return datetime.now(UTC).isoformat()
