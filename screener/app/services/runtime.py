"""Process-level composition of queue, pipeline and workers"""

from typing import Optional

from screener.app.core.config import Settings, settings as default_settings
from screener.app.core.database import AsyncSessionLocal
from screener.app.core.exceptions import NotFoundException
from screener.app.core.logging import get_logger
from screener.app.core.rate_limit import SlidingWindowRateLimiter
from screener.app.core.task_queue import TaskQueue
from screener.app.repositories.candidate_repository import CandidateRepository
from screener.app.schemas.analysis import RuleConfig
from screener.app.schemas.task import AnalysisTask, TaskHandle
from screener.app.services.analysis_pipeline import AnalysisPipeline
from screener.app.services.background_processor import BackgroundProcessor
from screener.app.services.notification_service import NotificationService
from screener.app.services.scoring_oracle import ScoringOracleClient
from screener.app.services.storage_service import StorageService
from screener.parsing.document_extractor import DocumentExtractor

logger = get_logger(__name__)


class PipelineRuntime:
    """
    Owns the task queue, the analysis pipeline and the worker pool
    
    Build one per process, ``start()`` it, and ``shutdown()`` it on exit.
    Collaborators can be passed in; anything omitted is built from settings.
    """
    
    def __init__(
        self,
        config: Settings = None,
        task_queue: TaskQueue = None,
        pipeline: AnalysisPipeline = None,
        session_factory=None,
        storage: StorageService = None,
        oracle: ScoringOracleClient = None,
        notifier: NotificationService = None
    ):
        self.config = config or default_settings
        self.session_factory = session_factory or AsyncSessionLocal
        self.task_queue = task_queue or TaskQueue(
            redis_url=self.config.REDIS_URL,
            queue_name=self.config.QUEUE_NAME,
            backoff_base_seconds=self.config.TASK_BACKOFF_BASE_SECONDS,
            completed_retention_seconds=self.config.COMPLETED_RETENTION_SECONDS,
            failed_retention_seconds=self.config.FAILED_RETENTION_SECONDS
        )
        self.rules = RuleConfig.from_settings(self.config)
        
        self._oracle = oracle
        self._notifier = notifier
        if pipeline is None:
            self._oracle = oracle or ScoringOracleClient()
            self._notifier = notifier or NotificationService()
            pipeline = AnalysisPipeline(
                storage=storage or StorageService(),
                extractor=DocumentExtractor(),
                oracle=self._oracle,
                notifier=self._notifier,
                session_factory=self.session_factory,
                rules=self.rules,
                task_timeout=self.config.TASK_TIMEOUT_SECONDS
            )
        self.pipeline = pipeline
        
        self.processor = BackgroundProcessor(
            task_queue=self.task_queue,
            handler=self.pipeline.run,
            rate_limiter=SlidingWindowRateLimiter(
                self.config.WORKER_RATE_LIMIT_MAX,
                self.config.WORKER_RATE_LIMIT_WINDOW_SECONDS
            ),
            poll_timeout=self.config.WORKER_POLL_TIMEOUT_SECONDS
        )
        self.started = False
    
    async def start(self, num_workers: Optional[int] = None) -> None:
        """Connect the queue, recover orphaned tasks and start the workers"""
        if self.started:
            return
        await self.task_queue.connect()
        await self.task_queue.requeue_orphaned()
        await self.task_queue.cleanup_dead_tasks()
        await self.processor.start_workers(num_workers or self.config.WORKER_CONCURRENCY)
        self.started = True
        logger.info("Pipeline runtime started")
    
    async def shutdown(self) -> None:
        """Stop workers and release connections"""
        if self.processor.is_running:
            await self.processor.stop_workers()
        if self._oracle is not None:
            await self._oracle.aclose()
        if self._notifier is not None:
            await self._notifier.aclose()
        await self.task_queue.disconnect()
        self.started = False
        logger.info("Pipeline runtime shut down")
    
    async def enqueue_candidate_analysis(
        self,
        candidate_id: str,
        cv_path: str,
        job_id: Optional[str] = None
    ) -> TaskHandle:
        """
        Queue a CV analysis for a candidate
        
        Raises:
            QueueUnavailableException: If the queue cannot accept the task
        """
        task = AnalysisTask.create(
            candidate_id=candidate_id,
            cv_location=cv_path,
            job_id=job_id,
            max_attempts=self.config.TASK_MAX_ATTEMPTS
        )
        return await self.task_queue.enqueue(task)
    
    async def reanalyze_candidate(self, candidate_id: str, job_id: Optional[str] = None) -> TaskHandle:
        """
        Queue a new analysis using the candidate's stored CV
        
        Raises:
            NotFoundException: If the candidate or its CV location is missing
        """
        async with self.session_factory() as session:
            candidate = await CandidateRepository(session).get_required(candidate_id)
        
        if not candidate.cv_url:
            raise NotFoundException(f"Candidate {candidate_id} has no CV on file")
        
        logger.info(f"Re-analysis requested for candidate {candidate_id}", extra={"candidate_id": candidate_id})
        return await self.enqueue_candidate_analysis(
            candidate_id,
            candidate.cv_url,
            job_id or candidate.job_id
        )
