"""
Service Routes
==============

パス × HTTPメソッド → ハンドラの明示的なテーブル

未登録メソッドは 405、未登録パスは 404 を構造的に返す。
"""

from enum import Enum
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import parse_qs, urlsplit

from .review import ReviewService, ServiceResponse


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"


Handler = Callable[[ReviewService, Any], Awaitable[ServiceResponse]]


async def _review(service: ReviewService, body: Any) -> ServiceResponse:
    return await service.review(body)


async def _list_plugins(service: ReviewService, body: Any) -> ServiceResponse:
    return service.list_plugins()


async def _list_models(service: ReviewService, body: Any) -> ServiceResponse:
    return service.list_models()


async def _test_plugin(service: ReviewService, body: Any) -> ServiceResponse:
    return await service.test_plugin(body)


async def _preflight(service: ReviewService, body: Any) -> ServiceResponse:
    return ServiceResponse(status_code=int(HTTPStatus.OK), body=None)


ROUTES: dict[str, dict[HttpMethod, Handler]] = {
    "/api/review": {
        HttpMethod.POST: _review,
        HttpMethod.OPTIONS: _preflight,
    },
    "/api/plugins": {
        HttpMethod.GET: _list_plugins,
    },
    "/api/plugins/models": {
        HttpMethod.GET: _list_models,
    },
    "/api/plugins/test": {
        HttpMethod.POST: _test_plugin,
    },
}

# /api/plugins?action=models 形式の互換
_PLUGIN_ACTIONS = {
    "models": "/api/plugins/models",
    "test": "/api/plugins/test",
}


def resolve(path: str) -> Optional[dict[HttpMethod, Handler]]:
    """パス（クエリ付き可）に対応するメソッドテーブル"""
    parts = urlsplit(path)
    route = parts.path.rstrip("/") or "/"
    if route == "/api/plugins":
        action = parse_qs(parts.query).get("action", [None])[0]
        route = _PLUGIN_ACTIONS.get(action, route)
    return ROUTES.get(route)


async def dispatch(
    service: ReviewService,
    method: str,
    path: str,
    body: Any = None,
) -> ServiceResponse:
    """
    リクエストをハンドラに振り分ける

    Args:
        service: ReviewService
        method: HTTPメソッド
        path: リクエストパス
        body: デコード済みJSONボディ
    """
    table = resolve(path)
    if table is None:
        return ServiceResponse(status_code=int(HTTPStatus.NOT_FOUND), body={"error": "Not found"})

    try:
        handler = table.get(HttpMethod(method.upper()))
    except ValueError:
        handler = None
    if handler is None:
        return ServiceResponse(
            status_code=int(HTTPStatus.METHOD_NOT_ALLOWED),
            body={"error": "Method not allowed", "allowed": [m.value for m in table]},
        )

    return await handler(service, body)
