"""
Review Pipeline
===============

チェッカーを順に連結して実行するオーケストレーター

テキストは左から右へ一方向に流れる（各ステージのプロンプトは前段の出力から作る）。
ステージの失敗は StageError として記録し、ステージごとの StagePolicy に従って
中断するか次のステージへ進むかを決める。
"""

import copy
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

import structlog

from src.review.errors import (
    InvalidInputError,
    InvalidStageInputError,
    PluginProcessingError,
)
from src.review.models import (
    PipelineRunResult,
    RunState,
    StageError,
    StageInput,
    StageOutput,
    StageResult,
    now_iso,
)


logger = structlog.get_logger(__name__)


@runtime_checkable
class Checker(Protocol):
    """パイプラインが要求するチェッカーのインターフェース"""
    name: str
    config: dict[str, Any]

    def validate_input(self, data: Any) -> bool: ...

    async def process(self, data: StageInput) -> StageOutput: ...

    def get_info(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class StagePolicy:
    """ステージ失敗時の方針"""
    stop_on_error: bool = True

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]]) -> "StagePolicy":
        """チェッカー設定（stopOnError / stop_on_error）から方針を読み取る"""
        options = options or {}
        for key in ("stop_on_error", "stopOnError"):
            if options.get(key) is not None:
                return cls(stop_on_error=options[key] is not False)
        return cls()


@dataclass(frozen=True)
class Stage:
    checker: Checker
    policy: StagePolicy


class ReviewPipeline:
    """
    チェッカーパイプライン

    1回の execute ごとに独立したコンテキストを持つため、
    同一インスタンスで複数の実行を並行させてもよい。
    """

    def __init__(
        self,
        checkers: Optional[list[Checker]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        """
        Args:
            checkers: 実行順のチェッカー
            context: 全ステージ入力にマージされるグローバルコンテキスト
        """
        self._stages: list[Stage] = []
        self.context: dict[str, Any] = dict(context or {})
        for checker in checkers or []:
            self.add_checker(checker)

    # ------------------------------------------
    # Construction
    # ------------------------------------------

    def add_checker(
        self,
        checker: Checker,
        *,
        stop_on_error: Optional[bool] = None,
    ) -> "ReviewPipeline":
        """
        チェッカーを末尾に追加

        Args:
            checker: チェッカー
            stop_on_error: 失敗時に中断するか（None ならチェッカー設定、既定 True）
        """
        if not isinstance(checker, Checker):
            raise TypeError("Plugin must implement validate_input/process/get_info")

        if stop_on_error is None:
            policy = StagePolicy.from_options(getattr(checker, "config", None))
        else:
            policy = StagePolicy(stop_on_error=stop_on_error)

        self._stages.append(Stage(checker=checker, policy=policy))
        return self

    def set_context(self, context: Mapping[str, Any]) -> "ReviewPipeline":
        """グローバルコンテキストに追記（新しいキーが優先）"""
        self.context = {**self.context, **context}
        return self

    @property
    def checkers(self) -> list[Checker]:
        return [stage.checker for stage in self._stages]

    def get_checker(self, name: str) -> Optional[Checker]:
        for stage in self._stages:
            if stage.checker.name == name:
                return stage.checker
        return None

    def remove_checker(self, name: str) -> bool:
        for i, stage in enumerate(self._stages):
            if stage.checker.name == name:
                del self._stages[i]
                return True
        return False

    def clear(self) -> None:
        self._stages = []
        self.context = {}

    def get_info(self) -> dict[str, Any]:
        """パイプライン情報"""
        return {
            "pluginCount": len(self._stages),
            "plugins": [
                {**stage.checker.get_info(), "stopOnError": stage.policy.stop_on_error}
                for stage in self._stages
            ],
            "context": self.context,
        }

    # ------------------------------------------
    # Execution
    # ------------------------------------------

    async def execute(self, initial_input: Any) -> PipelineRunResult:
        """
        パイプラインを実行

        Args:
            initial_input: text / context / metadata を持つ入力

        Returns:
            PipelineRunResult

        Raises:
            InvalidInputError: text が文字列でない
        """
        if isinstance(initial_input, StageInput):
            initial_input = initial_input.model_dump()
        if not isinstance(initial_input, Mapping) or not isinstance(initial_input.get("text"), str):
            raise InvalidInputError("Invalid input: text field is required")

        stages = list(self._stages)
        global_context = copy.deepcopy(self.context)
        original_text: str = initial_input["text"]

        text = original_text
        context: dict[str, Any] = {**global_context, **(initial_input.get("context") or {})}
        metadata: dict[str, Any] = dict(initial_input.get("metadata") or {})

        results: list[StageResult] = []
        errors: list[StageError] = []
        state = RunState.RUNNING
        start_time = time.time()

        for index, stage in enumerate(stages):
            checker = stage.checker
            stage_input = StageInput(
                text=text,
                context=copy.deepcopy(context),
                metadata=copy.deepcopy(metadata),
            )
            log = logger.bind(plugin=checker.name, stage=index + 1)

            try:
                log.info("Executing plugin")

                if not checker.validate_input(stage_input):
                    raise InvalidStageInputError(checker.name)

                output = await checker.process(stage_input)
                output = self._coerce_output(checker, output)

            except Exception as e:
                log.error("Plugin execution failed", error=str(e), error_type=type(e).__name__)
                errors.append(StageError(
                    plugin_name=checker.name,
                    error_message=str(e),
                    stage_index=index + 1,
                    error_type=type(e).__name__,
                ))
                if stage.policy.stop_on_error:
                    state = RunState.ABORTED
                    break
                continue

            results.append(StageResult(
                plugin_name=checker.name,
                input_text=text,
                output_text=output.text,
                changes=tuple(output.changes),
                metadata=output.metadata,
            ))

            text = output.text
            context = {**context, **output.context}
            metadata = {**metadata, **output.metadata}

        if state == RunState.RUNNING:
            state = RunState.COMPLETED

        logger.info(
            "Pipeline finished",
            state=state.value,
            executed=len(results),
            failed=len(errors),
            elapsed_ms=int((time.time() - start_time) * 1000),
        )

        return PipelineRunResult(
            success=not errors,
            final_text=text,
            original_text=original_text,
            results=tuple(results),
            errors=tuple(errors),
            state=state,
            metadata={
                "totalPlugins": len(stages),
                "executedPlugins": len(results),
                "executionTime": now_iso(),
                "executionTimeMs": int((time.time() - start_time) * 1000),
                "context": global_context,
            },
        )

    @staticmethod
    def _coerce_output(checker: Checker, output: Any) -> StageOutput:
        """チェッカー出力を StageOutput に揃える"""
        if isinstance(output, StageOutput):
            return output
        if isinstance(output, Mapping) and isinstance(output.get("text"), str):
            try:
                return StageOutput.model_validate(dict(output))
            except ValueError as e:
                raise PluginProcessingError(f"Plugin {checker.name} returned invalid result: {e}") from e
        raise PluginProcessingError(f"Plugin {checker.name} returned invalid result")
