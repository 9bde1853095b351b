"""
Grammar Checker
===============

語病チェック: 錯字・文法誤り・用語不適切・曖昧・論理矛盾を検出する
"""

from typing import Any

import structlog

from src.review.models import StageInput, StageOutput
from .base import ModelBackedChecker
from .prompts import CheckerPrompts
from .registry import register_checker


logger = structlog.get_logger(__name__)


@register_checker("grammar")
class GrammarCheckPlugin(ModelBackedChecker):
    """语病检查插件"""

    description = "检查文本中的语法错误、用词不当、表达不清等问题"
    default_issue_type = "grammar"
    default_description = "语法问题"
    temperature = 0.3

    def generate_prompt(self, text: str) -> str:
        return CheckerPrompts.grammar(text)

    async def process(self, data: StageInput) -> StageOutput:
        text = data.text
        metadata: dict[str, Any] = dict(data.metadata)

        prompt = self.generate_prompt(text)
        ai_response = await self.call_model(prompt)
        parsed = self.parse_ai_response(ai_response, text)

        logger.info(
            "Grammar check completed",
            checker=self.name,
            issues=len(parsed.changes),
            parse_error=parsed.parse_error,
        )

        return self.format_output(
            parsed.revised_text,
            parsed.changes,
            {
                **metadata,
                "analysis": parsed.analysis,
                "summary": parsed.summary,
                "stats": parsed.stats,
                "modelUsed": self.model_name,
                "promptLength": len(prompt),
                "responseLength": len(ai_response),
            },
        )
