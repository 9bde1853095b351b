"""
ProofChain Review MCP Server
============================

FastMCPを使用したMCPサーバー実装
"""

from typing import Any

from mcp.server.fastmcp import FastMCP

from src.shared.config.settings import settings
from src.service.review import ReviewService


# Review Service instance
_review_service = ReviewService(settings)


# ==============================================
# FastMCP Server
# ==============================================

app = FastMCP(f"{settings.server.name}-review")


# ==============================================
# Tools
# ==============================================

@app.tool()
async def review_text(
    text: str,
    plugins: list[dict[str, Any]] | None = None,
    default_model: str | None = None,
) -> dict[str, Any]:
    """
    テキストを核稿パイプラインで処理する

    Args:
        text: 対象テキスト
        plugins: チェッカー指定 [{"type": "grammar" | "personnel", "options": {...}}]（省略時: 語病チェック）
        default_model: 既定のバックエンドID（gemini / deepseek）

    Returns:
        レスポンスエンベロープ（status_code を付与）
    """
    body: dict[str, Any] = {"text": text, "plugins": plugins or []}
    if default_model:
        body["config"] = {"defaultModel": default_model}

    response = await _review_service.review(body)
    return {"status_code": response.status_code, **(response.body or {})}


@app.tool()
async def list_checkers() -> dict[str, Any]:
    """
    利用可能なチェッカーと設定項目の一覧を取得する

    Returns:
        チェッカー一覧
    """
    return _review_service.list_plugins().body


@app.tool()
async def list_models() -> dict[str, Any]:
    """
    利用可能なAIバックエンドの一覧を取得する

    Returns:
        バックエンド一覧（APIキー設定有無を含む）
    """
    return _review_service.list_models().body


@app.tool()
async def test_checker(
    checker_type: str,
    text: str,
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    単一チェッカーを試験実行する

    Args:
        checker_type: チェッカー種別
        text: 試験テキスト
        config: チェッカー設定

    Returns:
        チェッカー情報と処理結果
    """
    response = await _review_service.test_plugin({
        "pluginType": checker_type,
        "testText": text,
        "config": config or {},
    })
    if response.status_code == 400:
        raise ValueError(response.body["error"])
    return {"status_code": response.status_code, **(response.body or {})}


# ==============================================
# Server Factory
# ==============================================

def create_server() -> FastMCP:
    """MCPサーバーインスタンスを作成"""
    return app


def main() -> None:
    from src.shared.logging import configure_logging

    configure_logging()
    app.run()


if __name__ == "__main__":
    main()
