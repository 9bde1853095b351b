"""
Review Service
==============

受信リクエスト → パイプライン実行 → レスポンスエンベロープ

ステータス:
  - 200: 全ステージ成功
  - 422: 実行は完了したがステージエラーあり
  - 400: リクエスト不正
  - 500: 想定外の内部エラー
"""

import uuid
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Mapping, Optional

import httpx
import structlog
from pydantic import ValidationError

from src.checkers import checker_catalog, create_checker
from src.llm.manager import ModelManager
from src.review.errors import InternalFault, ReviewError
from src.review.models import (
    PipelineRunResult,
    PluginSpec,
    ReviewRequest,
    StageInput,
    now_iso,
)
from src.review.pipeline import ReviewPipeline, StagePolicy
from src.roster import RosterCache
from src.shared.config import Settings, get_settings
from src.shared.logging import bind_request, clear_request
from .webhook import WebhookNotifier


logger = structlog.get_logger(__name__)

DEFAULT_SUMMARY = "处理完成"


@dataclass
class ServiceResponse:
    """HTTP層へ渡すレスポンス"""
    status_code: int
    body: Optional[dict[str, Any]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == HTTPStatus.OK


def _error_response(status: HTTPStatus, message: str, **extra: Any) -> ServiceResponse:
    return ServiceResponse(status_code=int(status), body={"success": False, "error": message, **extra})


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


class ReviewService:
    """AI核稿サービス"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        roster_cache: Optional[RosterCache] = None,
        notifier: Optional[WebhookNotifier] = None,
    ):
        """
        Args:
            settings: 設定
            client: 外部呼び出しで共有する AsyncClient
            roster_cache: 名簿キャッシュ（省略時はプロセス共有キャッシュ）
            notifier: Webhook通知（省略時は REMOTE_WEBHOOK_URL から生成）
        """
        self.settings = settings or get_settings()
        self.client = client
        self.roster_cache = roster_cache
        self.notifier = notifier or WebhookNotifier(settings=self.settings, client=client)

    # ==============================================
    # Checker construction
    # ==============================================

    def _create_checker(self, spec: PluginSpec, default_model: Optional[str]):
        extra = {}
        if spec.type == "personnel" and self.roster_cache is not None:
            extra["roster_cache"] = self.roster_cache
        return create_checker(
            spec,
            settings=self.settings,
            client=self.client,
            default_model=default_model,
            **extra,
        )

    def build_pipeline(self, request: ReviewRequest, request_id: str) -> ReviewPipeline:
        """リクエストからパイプラインを構築"""
        pipeline = ReviewPipeline()
        default_model = request.config.default_model or self.settings.llm.default_model

        for spec in request.plugins:
            checker = self._create_checker(spec, default_model)
            if checker is not None:
                pipeline.add_checker(
                    checker,
                    stop_on_error=StagePolicy.from_options(spec.options).stop_on_error,
                )

        # チェッカー未指定時は語病チェックのみ
        if not request.plugins:
            pipeline.add_checker(self._create_checker(PluginSpec(type="grammar"), default_model))

        pipeline.set_context({
            "requestId": request_id,
            "timestamp": now_iso(),
            "userConfig": request.config.model_dump(by_alias=True, exclude_none=True),
        })
        return pipeline

    # ==============================================
    # Review
    # ==============================================

    async def review(self, body: Any) -> ServiceResponse:
        """
        核稿リクエストを処理

        Args:
            body: {text, plugins: [{type, options}], config: {defaultModel}}

        Returns:
            ServiceResponse（200 / 422 / 400 / 500）
        """
        try:
            request = ReviewRequest.model_validate(body)
        except ValidationError as e:
            logger.warning("Rejected malformed review request", error_count=e.error_count())
            return _error_response(
                HTTPStatus.BAD_REQUEST,
                "Invalid input: text field is required",
                details=e.errors(include_url=False, include_context=False),
            )

        request_id = generate_request_id()
        bind_request(request_id=request_id)
        processing_start = now_iso()

        try:
            pipeline = self.build_pipeline(request, request_id)
            result = await pipeline.execute({
                "text": request.text,
                "metadata": {
                    "originalLength": len(request.text),
                    "processingStart": processing_start,
                },
            })
        except Exception as e:
            logger.exception("Review processing failed")
            fault = e if isinstance(e, ReviewError) else InternalFault(str(e))
            self._notify(
                original_text=request.text,
                final_text=request.text,
                errors=[{"error": str(fault), "stage": "exception"}],
                processing_start=processing_start,
                summary="处理过程中发生异常",
            )
            return _error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                str(fault),
                data=None,
                errorType=type(fault).__name__,
            )
        finally:
            clear_request()

        processing_end = now_iso()
        errors = [error.model_dump(by_alias=True, mode="json") for error in result.errors]

        self._notify(
            original_text=result.original_text,
            final_text=result.final_text,
            errors=errors,
            processing_start=processing_start,
            processing_end=processing_end,
            summary=self.summarize(result),
        )

        status = HTTPStatus.OK if result.success else HTTPStatus.UNPROCESSABLE_ENTITY
        return ServiceResponse(
            status_code=int(status),
            body={
                "success": result.success,
                "errors": errors,
                "data": {
                    "originalText": result.original_text,
                    "finalText": result.final_text,
                    "results": [r.model_dump(by_alias=True, mode="json") for r in result.results],
                    "metadata": {
                        **result.metadata,
                        "state": result.state.value,
                        "processingEnd": processing_end,
                        "finalLength": len(result.final_text),
                    },
                },
            },
        )

    @staticmethod
    def summarize(result: PipelineRunResult) -> str:
        """最後に成功したステージの概要"""
        for stage in reversed(result.results):
            summary = stage.metadata.get("summary") or stage.metadata.get("statistics")
            if summary:
                return str(summary)
        return DEFAULT_SUMMARY

    def _notify(self, *, processing_end: Optional[str] = None, **fields: Any) -> None:
        if not self.notifier.enabled:
            return
        payload = self.notifier.build_payload(
            processing_end=processing_end or now_iso(),
            **fields,
        )
        self.notifier.dispatch(payload)

    # ==============================================
    # Plugin management
    # ==============================================

    def list_models(self) -> ServiceResponse:
        """利用可能なAIバックエンド一覧"""
        models = ModelManager(self.settings, client=self.client).get_available_models()
        return ServiceResponse(status_code=int(HTTPStatus.OK), body={"success": True, "data": models})

    def list_plugins(self) -> ServiceResponse:
        """利用可能なチェッカー一覧"""
        model_ids = [m["id"] for m in ModelManager(self.settings).get_available_models()]
        return ServiceResponse(
            status_code=int(HTTPStatus.OK),
            body={"success": True, "data": checker_catalog(model_ids)},
        )

    async def test_plugin(self, body: Any) -> ServiceResponse:
        """
        単一チェッカーを試験実行

        Args:
            body: {pluginType, testText, config}
        """
        if not isinstance(body, Mapping):
            return _error_response(HTTPStatus.BAD_REQUEST, "pluginType and testText are required")

        plugin_type = body.get("pluginType")
        test_text = body.get("testText")
        config = body.get("config") or {}
        if not isinstance(plugin_type, str) or not plugin_type:
            return _error_response(HTTPStatus.BAD_REQUEST, "pluginType and testText are required")
        if not isinstance(test_text, str) or not test_text:
            return _error_response(HTTPStatus.BAD_REQUEST, "pluginType and testText are required")
        if not isinstance(config, Mapping):
            return _error_response(HTTPStatus.BAD_REQUEST, "config must be an object")

        checker = self._create_checker(PluginSpec(type=plugin_type, options=dict(config)), None)
        if checker is None:
            return _error_response(HTTPStatus.BAD_REQUEST, f"Unknown plugin type: {plugin_type}")

        try:
            output = await checker.process(StageInput(
                text=test_text,
                context={"isTest": True},
                metadata={"testMode": True},
            ))
        except Exception as e:
            logger.exception("Plugin test failed", plugin_type=plugin_type)
            return _error_response(HTTPStatus.INTERNAL_SERVER_ERROR, str(e))

        return ServiceResponse(
            status_code=int(HTTPStatus.OK),
            body={
                "success": True,
                "data": {
                    "plugin": checker.get_info(),
                    "result": output.model_dump(by_alias=True, mode="json"),
                },
            },
        )
