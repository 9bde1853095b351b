"""
ProofChain Review MCP Server
============================

核稿パイプラインを公開するMCPサーバー

Tools:
  - review_text: テキスト核稿
  - list_checkers: チェッカー一覧
  - list_models: AIバックエンド一覧
  - test_checker: 単一チェッカー試験実行
"""

from src.servers.review.server import create_server, app

__all__ = ["create_server", "app"]
