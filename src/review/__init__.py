"""
ProofChain - Review Pipeline Package
====================================

AI核稿パイプライン
- ReviewPipeline: メインオーケストレーター
- extract_json_candidate: AI応答からのJSON抽出
"""

from .errors import (
    ReviewError,
    InvalidInputError,
    InvalidStageInputError,
    PluginProcessingError,
    ModelBackendError,
    ReferenceDataError,
    InternalFault,
)
from .extractor import extract_json_candidate
from .models import (
    ChangeRecord,
    PipelineRunResult,
    PluginSpec,
    ReviewRequest,
    RunState,
    Severity,
    StageError,
    StageInput,
    StageOutput,
    StageResult,
)
from .pipeline import ReviewPipeline, StagePolicy

__all__ = [
    "ReviewPipeline",
    "StagePolicy",
    "extract_json_candidate",
    "ChangeRecord",
    "PipelineRunResult",
    "PluginSpec",
    "ReviewRequest",
    "RunState",
    "Severity",
    "StageError",
    "StageInput",
    "StageOutput",
    "StageResult",
    "ReviewError",
    "InvalidInputError",
    "InvalidStageInputError",
    "PluginProcessingError",
    "ModelBackendError",
    "ReferenceDataError",
    "InternalFault",
]
