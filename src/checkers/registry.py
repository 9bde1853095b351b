"""
Checker Registry
================

チェッカー種別 → クラスのレジストリと、PluginSpec からの生成
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
import structlog

from src.llm.manager import ModelManager
from src.review.models import PluginSpec
from src.shared.config import Settings, get_settings


logger = structlog.get_logger(__name__)


@dataclass
class CheckerEntry:
    """チェッカー登録情報"""
    checker_type: str
    checker_class: type
    name: str
    description: str


# チェッカーのレジストリ
_checker_registry: dict[str, CheckerEntry] = {}


def register_checker(checker_type: str) -> Callable[[type], type]:
    """チェッカー登録デコレータ"""
    def decorator(cls: type) -> type:
        _checker_registry[checker_type] = CheckerEntry(
            checker_type=checker_type,
            checker_class=cls,
            name=cls.__name__,
            description=cls.description,
        )
        return cls
    return decorator


def get_checker_class(checker_type: str) -> Optional[type]:
    entry = _checker_registry.get(checker_type)
    return entry.checker_class if entry else None


def registered_types() -> list[str]:
    return list(_checker_registry)


def credential_for(settings: Settings, model_name: str) -> Optional[str]:
    """バックエンドIDに対応する設定上のAPIキー"""
    section = getattr(settings, model_name, None)
    return getattr(section, "api_key", None)


def create_checker(
    spec: PluginSpec,
    *,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
    default_model: Optional[str] = None,
    **extra: Any,
):
    """
    PluginSpec からチェッカーを生成

    Args:
        spec: チェッカー指定
        settings: 設定
        client: バックエンド呼び出しで共有する AsyncClient
        default_model: options.modelName 省略時のバックエンドID
        **extra: チェッカー固有のコンストラクタ引数（roster_cache 等）

    Returns:
        チェッカーインスタンス（未知の種別は None）
    """
    settings = settings or get_settings()
    checker_class = get_checker_class(spec.type)
    if checker_class is None:
        logger.warning("Unknown plugin type", plugin_type=spec.type)
        return None

    options = dict(spec.options)
    model_name = (
        options.get("modelName") or options.get("model_name")
        or default_model or settings.llm.default_model
    )
    options["modelName"] = model_name
    if not (options.get("apiKey") or options.get("api_key")):
        api_key = credential_for(settings, model_name)
        if not api_key:
            logger.warning("API key not found for model", model=model_name)
        options["apiKey"] = api_key

    if spec.type == "personnel" and not (
        options.get("personnelApiUrl") or options.get("personnel_api_url")
    ):
        options["personnelApiUrl"] = settings.roster.api_url

    # APIキー設定はチェッカー単位
    model_manager = ModelManager(settings, client=client)
    return checker_class(options, model_manager=model_manager, **extra)


# ==============================================
# Catalog
# ==============================================

def checker_catalog(model_ids: list[str]) -> list[dict[str, Any]]:
    """利用可能なチェッカーと設定項目の一覧"""
    default_model = model_ids[0] if model_ids else None
    model_option = {
        "type": "select",
        "options": model_ids,
        "default": default_model,
    }
    return [
        {
            "type": "grammar",
            "name": "语法检查插件",
            "description": _checker_registry["grammar"].description,
            "version": "1.0.0",
            "supportedModels": model_ids,
            "configOptions": {
                "modelName": model_option,
                "temperature": {"type": "number", "min": 0, "max": 1, "default": 0.3},
                "stopOnError": {"type": "boolean", "default": True},
            },
        },
        {
            "type": "personnel",
            "name": "人员信息核对插件",
            "description": _checker_registry["personnel"].description,
            "version": "1.0.0",
            "supportedModels": model_ids,
            "configOptions": {
                "modelName": model_option,
                "personnelApiUrl": {
                    "type": "string",
                    "required": False,
                    "description": "人员数据API地址",
                },
                "useLocalPersonnel": {
                    "type": "boolean",
                    "default": False,
                    "description": "使用本地人员名单",
                },
                "localPersonnelData": {
                    "type": "textarea",
                    "description": "本地人员名单（每行一个，格式：姓名 - 职务）",
                    "dependsOn": "useLocalPersonnel",
                },
                "cacheExpiry": {
                    "type": "number",
                    "default": 1800000,
                    "description": "缓存过期时间（毫秒）",
                },
                "stopOnError": {"type": "boolean", "default": True},
            },
        },
    ]
