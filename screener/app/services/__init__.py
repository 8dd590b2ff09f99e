"""Business logic services"""

from screener.app.services.storage_service import StorageService
from screener.app.services.scoring_oracle import ScoringOracleClient
from screener.app.services.decision_engine import decide, generate_feedback_message
from screener.app.services.notification_service import NotificationService
from screener.app.services.analysis_pipeline import AnalysisPipeline
from screener.app.services.background_processor import BackgroundProcessor
from screener.app.services.runtime import PipelineRuntime

__all__ = [
    'StorageService',
    'ScoringOracleClient',
    'decide',
    'generate_feedback_message',
    'NotificationService',
    'AnalysisPipeline',
    'BackgroundProcessor',
    'PipelineRuntime',
]
