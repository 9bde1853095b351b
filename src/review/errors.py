"""
Review Errors
=============

レビューパイプラインの例外階層

- InvalidInputError: 実行前に拒否される不正リクエスト
- InvalidStageInputError: ステージ前提条件の不成立
- PluginProcessingError: チェッカー内部処理の失敗
- ModelBackendError: AIバックエンド呼び出しの失敗
- ReferenceDataError: 参照データ（人員名簿）取得の失敗
- InternalFault: 想定外の例外
"""

from typing import Optional


class ReviewError(Exception):
    """ProofChain例外の基底クラス"""


class InvalidInputError(ReviewError, ValueError):
    """パイプライン入力が不正"""


class InvalidStageInputError(ReviewError):
    """ステージ入力が前提条件を満たさない"""

    def __init__(self, plugin_name: str):
        super().__init__(f"Invalid input for plugin {plugin_name}")
        self.plugin_name = plugin_name


class PluginProcessingError(ReviewError):
    """チェッカーがローカル回復を尽くした後の失敗"""


class InternalFault(ReviewError):
    """パイプライン外で発生した想定外の例外"""


class NetworkTimeout(ReviewError):
    """外部呼び出しのタイムアウト"""


# ==============================================
# Model Backend Errors
# ==============================================

class ModelBackendError(ReviewError):
    """AIバックエンド呼び出しエラー"""

    def __init__(self, message: str, backend_id: Optional[str] = None):
        super().__init__(message)
        self.backend_id = backend_id


class UnknownBackendError(ModelBackendError):
    def __init__(self, backend_id: str):
        super().__init__(f"Model {backend_id} not found", backend_id)


class MissingCredentialError(ModelBackendError):
    def __init__(self, backend_id: str):
        super().__init__(f"API key not set for model {backend_id}", backend_id)


class BackendAPIError(ModelBackendError):
    """バックエンドが非2xxステータスを返した"""

    def __init__(self, backend_id: str, status_code: int, reason: str = ""):
        name = backend_id.capitalize()
        super().__init__(f"{name} API error: {status_code} {reason}".rstrip(), backend_id)
        self.status_code = status_code


class BackendAuthorizationError(BackendAPIError):
    """401 / 403"""


class ResponseTruncatedError(ModelBackendError):
    """長さ制限により応答が途中で切れた"""

    def __init__(self, backend_id: str):
        super().__init__("响应内容被截断，请尝试缩短输入文本或使用其他模型", backend_id)


class ContentFilteredError(ModelBackendError):
    """安全ポリシーにより応答がブロックされた"""

    def __init__(self, backend_id: str):
        super().__init__("内容被安全过滤器阻止，请检查输入内容", backend_id)


class EmptyResponseError(ModelBackendError):
    def __init__(self, backend_id: str):
        super().__init__(f"{backend_id.capitalize()}未返回有效内容", backend_id)


class BackendTimeoutError(ModelBackendError, NetworkTimeout):
    def __init__(self, backend_id: str, timeout: float):
        super().__init__(f"{backend_id} request timed out after {timeout}s", backend_id)
        self.timeout = timeout


class BackendConnectionError(ModelBackendError):
    pass


# ==============================================
# Reference Data Errors
# ==============================================

class ReferenceDataError(ReviewError):
    """参照データ取得エラー"""


class RosterConfigurationError(ReferenceDataError):
    def __init__(self):
        super().__init__("Personnel API URL not configured")


class RosterFetchError(ReferenceDataError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(f"无法获取人员数据: {message}")
        self.status = status


class RosterTimeoutError(ReferenceDataError, NetworkTimeout):
    def __init__(self, url: str, timeout: float):
        super().__init__(f"无法获取人员数据: request to {url} timed out after {timeout}s")
        self.timeout = timeout


class NoReferenceDataError(ReferenceDataError):
    def __init__(self):
        super().__init__("未获取到有效的人员数据")
