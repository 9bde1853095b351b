"""
Checker Prompts
Pre-built prompt scaffolding shared by the AI checkers
"""

from typing import Iterable

from src.review.models import RosterEntry


# 統一JSON回答形式
JSON_FORMAT_INSTRUCTION = """请直接返回JSON格式的结果，不要添加任何markdown标记或其他格式：

{
  "revisedText": "修改后的完整文本（必须包含完整内容）",
  "issues": [
    {
      "type": "问题类型",
      "line": 行号,
      "original": "原文片段",
      "revised": "修改后片段",
      "description": "问题说明",
      "severity": "low | medium | high"
    }
  ],
  "summary": "修改说明概要"
}

重要要求：
- 必须返回有效的JSON格式
- revisedText必须包含完整的修改后文本
- 没有问题时issues返回空数组，revisedText返回原文"""

ROLE_INSTRUCTION = "你是一名专业的中文文字编辑，负责对稿件进行严谨的核稿。"


def build_checker_prompt(specific_instruction: str) -> str:
    """チェッカー固有の指示に共通の役割・回答形式を付与する"""
    return f"""{ROLE_INSTRUCTION}

{specific_instruction.strip()}

{JSON_FORMAT_INSTRUCTION}"""


class CheckerPrompts:
    """Prompts for the built-in checkers."""

    @staticmethod
    def grammar(text: str) -> str:
        """語病チェック用プロンプト"""
        return build_checker_prompt(f"""
<规则描述>
请检查以下文本中的语言问题，包括错别字、语法错误、用词不当、存在歧义、不合逻辑、不合常理等。
</规则描述>

<待核对文本>
{text}
</待核对文本>""")

    @staticmethod
    def personnel(text: str, roster: Iterable[RosterEntry]) -> str:
        """人員情報照合用プロンプト"""
        roster_lines = "\n".join(f"{entry.name} - {entry.position}" for entry in roster)
        return build_checker_prompt(f"""
请核对以下文本中提到的人员姓名和职务是否正确。
对文本中出现的每一位人员，逐一与标准人员名单比对其职务；姓名或职务不一致时记为问题，
问题中请附加 "personName"（涉及人员）与 "correctInfo"（名单中的正确信息）字段。

标准人员名单：
{roster_lines}

待核对文本：
{text}""")
