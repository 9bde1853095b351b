"""
Tests for Checkers
==================

語病チェック・人員情報照合チェッカーのテスト
"""

import json

import httpx
import pytest

from src.checkers import (
    GrammarCheckPlugin,
    PersonnelCheckPlugin,
    create_checker,
    get_checker_class,
    registered_types,
)
from src.llm.manager import ModelManager
from src.review.errors import MissingCredentialError, NoReferenceDataError
from src.review.models import PluginSpec, Severity, StageInput
from src.roster import RosterCache
from src.shared.config.settings import (
    DeepSeekSettings,
    GeminiSettings,
    RosterSettings,
    Settings,
)


def make_settings(deepseek_key="deepseek-key") -> Settings:
    return Settings(
        gemini=GeminiSettings(api_key=None),
        deepseek=DeepSeekSettings(api_key=deepseek_key),
        roster=RosterSettings(api_url="https://hr.example.com/api/personnel"),
    )


class ModelStub:
    """chat_completion 形式で固定応答を返すトランスポート"""

    def __init__(self, content: str):
        self.content = content
        self.prompts: list[str] = []
        self.temperatures: list[float] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.prompts.append(body["messages"][0]["content"])
        self.temperatures.append(body["temperature"])
        return httpx.Response(200, json={
            "choices": [{"message": {"content": self.content}, "finish_reason": "stop"}]
        })

    def manager(self, settings: Settings) -> ModelManager:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        return ModelManager(settings, client=client)


def stage_input(text: str) -> StageInput:
    return StageInput(text=text, context={"requestId": "req-test"}, metadata={})


class TestRegistry:
    """チェッカー登録のテスト"""

    def test_builtin_types(self):
        assert "grammar" in registered_types()
        assert "personnel" in registered_types()
        assert get_checker_class("grammar") is GrammarCheckPlugin
        assert get_checker_class("personnel") is PersonnelCheckPlugin
        assert get_checker_class("style") is None

    def test_create_unknown_type(self):
        assert create_checker(PluginSpec(type="style"), settings=make_settings()) is None

    def test_create_fills_model_and_credential(self):
        checker = create_checker(PluginSpec(type="grammar"), settings=make_settings())

        assert checker.model_name == "gemini"
        assert checker.config["modelName"] == "gemini"
        assert checker.model_manager.get_model("gemini").has_api_key is False

    def test_create_with_explicit_model(self):
        checker = create_checker(
            PluginSpec(type="grammar", options={"modelName": "deepseek"}),
            settings=make_settings(),
        )

        assert checker.model_name == "deepseek"
        assert checker.model_manager.get_model("deepseek").api_key == "deepseek-key"
        assert "apiKey" not in checker.get_info()["config"]

    def test_create_personnel_uses_configured_url(self):
        checker = create_checker(
            PluginSpec(type="personnel"),
            settings=make_settings(),
            roster_cache=RosterCache(60, timeout_seconds=1),
        )

        assert checker.personnel_api_url == "https://hr.example.com/api/personnel"


class TestGrammarCheckPlugin:
    """語病チェックのテスト"""

    @pytest.mark.asyncio
    async def test_clean_text(self):
        stub = ModelStub(json.dumps({
            "revisedText": "我今天去了学校。",
            "issues": [],
            "summary": "无问题",
        }, ensure_ascii=False))
        settings = make_settings()
        checker = GrammarCheckPlugin({"modelName": "deepseek"}, stub.manager(settings))

        output = await checker.process(stage_input("我今天去了学校。"))

        assert output.text == "我今天去了学校。"
        assert output.changes == []
        assert output.metadata["summary"] == "无问题"
        assert output.metadata["modelUsed"] == "deepseek"
        assert output.metadata["processedBy"] == "GrammarCheckPlugin"
        assert "我今天去了学校。" in stub.prompts[0]
        assert stub.temperatures == [0.3]

    @pytest.mark.asyncio
    async def test_issues_become_changes(self):
        stub = ModelStub("以下是检查结果：\n```json\n" + json.dumps({
            "revisedText": "我们必须提高认识。",
            "issues": [
                {
                    "type": "grammar",
                    "line": 1,
                    "original": "提高水平认识",
                    "revised": "提高认识",
                    "description": "搭配不当",
                    "severity": "HIGH",
                },
                {"description": "缺少位置信息", "severity": "unknown"},
                "not an issue",
            ],
            "summary": "修改1处",
        }, ensure_ascii=False) + "\n```")
        checker = GrammarCheckPlugin({"modelName": "deepseek"}, stub.manager(make_settings()))

        output = await checker.process(stage_input("我们必须提高水平认识。"))

        assert output.text == "我们必须提高认识。"
        assert len(output.changes) == 2
        first, second = output.changes
        assert first.position == "行1"
        assert first.severity == Severity.HIGH
        assert second.position == "未知位置"
        assert second.severity == Severity.MEDIUM
        assert second.type == "grammar"

    @pytest.mark.asyncio
    async def test_prose_response_recovers_locally(self):
        """JSONでない応答は原文 + error指摘1件"""
        stub = ModelStub("抱歉，我无法处理这段文本。")
        checker = GrammarCheckPlugin({"modelName": "deepseek"}, stub.manager(make_settings()))

        output = await checker.process(stage_input("原文内容"))

        assert output.text == "原文内容"
        assert len(output.changes) == 1
        change = output.changes[0]
        assert change.type == "error"
        assert change.position == "系统"
        assert change.severity == Severity.HIGH

    @pytest.mark.asyncio
    async def test_empty_revised_text_keeps_input(self):
        stub = ModelStub('{"revisedText": "", "issues": []}')
        checker = GrammarCheckPlugin({"modelName": "deepseek"}, stub.manager(make_settings()))

        output = await checker.process(stage_input("保持原样"))

        assert output.text == "保持原样"

    @pytest.mark.asyncio
    async def test_missing_credential_propagates(self):
        stub = ModelStub("{}")
        checker = GrammarCheckPlugin({"modelName": "deepseek"}, stub.manager(make_settings(None)))

        with pytest.raises(MissingCredentialError):
            await checker.process(stage_input("文本"))
        assert stub.prompts == []

    @pytest.mark.asyncio
    async def test_temperature_override(self):
        stub = ModelStub('{"revisedText": "文本", "issues": []}')
        checker = GrammarCheckPlugin(
            {"modelName": "deepseek", "temperature": 0}, stub.manager(make_settings())
        )

        await checker.process(stage_input("文本"))

        assert stub.temperatures == [0.0]

    def test_validate_input(self):
        checker = GrammarCheckPlugin({}, ModelManager(make_settings()))

        assert checker.validate_input({"text": "abc"}) is True
        assert checker.validate_input(stage_input("abc")) is True
        assert checker.validate_input({"text": 123}) is False
        assert checker.validate_input({}) is False
        assert checker.validate_input(None) is False

    def test_get_info_hides_credentials(self):
        checker = GrammarCheckPlugin(
            {"name": "语法", "apiKey": "secret", "modelName": "deepseek"},
            ModelManager(make_settings()),
        )

        info = checker.get_info()

        assert info["name"] == "语法"
        assert "apiKey" not in info["config"]
        assert info["config"]["modelName"] == "deepseek"


class TestPersonnelCheckPlugin:
    """人員情報照合のテスト"""

    LOCAL_ROSTER = "张三 - 局长\n李四 - 副局长"

    def make_checker(self, stub: ModelStub, **options) -> PersonnelCheckPlugin:
        config = {"modelName": "deepseek", **options}
        return PersonnelCheckPlugin(
            config,
            stub.manager(make_settings()),
            roster_cache=RosterCache(60, timeout_seconds=1),
        )

    @pytest.mark.asyncio
    async def test_local_roster_in_prompt(self):
        stub = ModelStub(json.dumps({
            "revisedText": "张三局长出席了会议。",
            "issues": [
                {
                    "type": "personnel",
                    "line": 1,
                    "original": "张三副局长",
                    "revised": "张三局长",
                    "description": "职务不符",
                    "severity": "high",
                    "personName": "张三",
                    "correctInfo": "局长",
                }
            ],
            "summary": "发现1处职务错误",
        }, ensure_ascii=False))
        checker = self.make_checker(
            stub, useLocalPersonnel=True, localPersonnelData=self.LOCAL_ROSTER
        )

        output = await checker.process(stage_input("张三副局长出席了会议。"))

        assert "张三 - 局长" in stub.prompts[0]
        assert "李四 - 副局长" in stub.prompts[0]
        assert stub.temperatures == [0.1]
        assert output.text == "张三局长出席了会议。"
        change = output.changes[0]
        assert change.details == {"personName": "张三", "correctInfo": "局长"}
        assert output.metadata["personnelCount"] == 2
        assert output.metadata["dataSource"] == "local"
        assert output.metadata["checkResult"] == "personnel-张三-职务不符"

    @pytest.mark.asyncio
    async def test_remote_roster(self):
        roster_calls = []

        def roster_handler(request):
            roster_calls.append(request)
            return httpx.Response(200, json={"data": [{"name": "王五", "position": "处长"}]})

        stub = ModelStub('{"revisedText": "王五处长", "issues": []}')
        cache = RosterCache(
            60,
            timeout_seconds=1,
            client=httpx.AsyncClient(transport=httpx.MockTransport(roster_handler)),
        )
        checker = PersonnelCheckPlugin(
            {"modelName": "deepseek", "personnelApiUrl": "https://hr.example.com/roster"},
            stub.manager(make_settings()),
            roster_cache=cache,
        )

        await checker.process(stage_input("王五处长"))
        output = await checker.process(stage_input("王五处长"))

        assert len(roster_calls) == 1
        assert "王五 - 处长" in stub.prompts[1]
        assert output.metadata["dataSource"] == "https://hr.example.com/roster"
        assert output.metadata["lastDataFetch"] is not None
        assert checker.get_cache_status()["recordCount"] == 1

    @pytest.mark.asyncio
    async def test_empty_roster(self):
        stub = ModelStub("{}")
        checker = self.make_checker(stub, useLocalPersonnel=True, localPersonnelData="")

        with pytest.raises(NoReferenceDataError):
            await checker.process(stage_input("张三"))
        assert stub.prompts == []

    def test_cache_expiry_milliseconds(self):
        checker = PersonnelCheckPlugin(
            {"modelName": "deepseek", "cacheExpiry": 600000},
            ModelManager(make_settings()),
        )

        assert checker.roster_cache.ttl_seconds == 600

    def test_set_personnel_api_url_invalidates(self):
        stub = ModelStub("{}")
        checker = self.make_checker(stub)

        checker.set_personnel_api_url("https://new.example.com/roster")

        assert checker.personnel_api_url == "https://new.example.com/roster"
        assert checker.get_cache_status()["hasCachedData"] is False
