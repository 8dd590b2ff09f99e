"""Candidate analysis workflow executed once per queued task"""

import asyncio
from pathlib import PurePosixPath
from typing import Any, Awaitable, Callable, Dict, Optional

from screener.app.core.exceptions import PipelineFailureException
from screener.app.core.logging import get_logger
from screener.app.models.candidate import Candidate, CandidateStatus
from screener.app.repositories.activity_log_repository import ActivityLogRepository
from screener.app.repositories.candidate_repository import CandidateRepository
from screener.app.repositories.job_repository import JobRepository
from screener.app.schemas.analysis import (
    DecisionOutcome,
    JobContext,
    RuleConfig,
    ScoringResult,
    ScoringWeights,
)
from screener.app.schemas.cv import CvDocument
from screener.app.schemas.task import AnalysisTask
from screener.app.services.decision_engine import decide, generate_feedback_message
from screener.app.services.notification_service import NotificationService
from screener.app.services.scoring_oracle import ScoringOracleClient
from screener.app.services.storage_service import StorageService
from screener.parsing.document_extractor import DocumentExtractor

logger = get_logger(__name__)

ProgressCallback = Callable[[int], Awaitable[None]]

# Progress checkpoints reported to the queue
PROGRESS_EXTRACTED = 25
PROGRESS_CONTEXT_FETCHED = 30
PROGRESS_SCORED = 70
PROGRESS_DECIDED = 80
PROGRESS_PERSISTED = 90
PROGRESS_NOTIFIED = 95


class AnalysisPipeline:
    """
    Runs fetch, parse, score, decide, persist, notify and callback for one task
    
    Steps run strictly in order. Extraction, scoring and persistence errors
    mark the candidate ``processing-failed`` and are re-raised wrapped in
    PipelineFailureException so the queue can retry the task. Notification
    and callback failures are logged and never fail the task.
    """
    
    def __init__(
        self,
        storage: StorageService,
        extractor: DocumentExtractor,
        oracle: ScoringOracleClient,
        notifier: NotificationService,
        session_factory,
        rules: RuleConfig = None,
        weights: ScoringWeights = None,
        task_timeout: Optional[float] = None
    ):
        self.storage = storage
        self.extractor = extractor
        self.oracle = oracle
        self.notifier = notifier
        self.session_factory = session_factory
        self.rules = rules or RuleConfig()
        self.weights = weights or ScoringWeights()
        self.task_timeout = task_timeout
    
    async def run(self, task: AnalysisTask, progress: Optional[ProgressCallback] = None) -> Dict[str, Any]:
        """
        Analyze one candidate
        
        Returns:
            ``{"candidate_id", "status", "score"}`` on success
        
        Raises:
            PipelineFailureException: If any non-best-effort step failed
        """
        log_extra = {"candidate_id": task.candidate_id, "task_id": task.task_id}
        logger.info(f"Starting analysis for candidate {task.candidate_id}", extra=log_extra)
        state = {"step": "download"}
        
        try:
            execution = self._execute(task, progress, state)
            if self.task_timeout:
                return await asyncio.wait_for(execution, self.task_timeout)
            return await execution
        except Exception as e:
            if isinstance(e, asyncio.TimeoutError):
                reason = f"Analysis failed: timed out after {self.task_timeout:g}s during {state['step']}"
            else:
                reason = f"Analysis failed: {e}"
            logger.error(
                f"Candidate analysis failed at {state['step']}: {e!r}",
                extra=log_extra,
                exc_info=True
            )
            await self._record_failure(task.candidate_id, reason)
            raise PipelineFailureException(state["step"], e) from e
    
    async def _execute(
        self,
        task: AnalysisTask,
        progress: Optional[ProgressCallback],
        state: Dict[str, str]
    ) -> Dict[str, Any]:
        log_extra = {"candidate_id": task.candidate_id, "task_id": task.task_id}
        
        # Step 1: download and parse the CV
        storage_path = self.storage.ensure_path_from_url(task.cv_location)
        buffer = await self.storage.download(storage_path)
        
        state["step"] = "extract"
        key = PurePosixPath(storage_path)
        # keys without an extension are sniffed
        cv = await asyncio.to_thread(
            self.extractor.extract,
            buffer,
            key.suffix or None,
            key.name
        )
        await self._report(progress, PROGRESS_EXTRACTED)
        
        # Step 2: job context
        state["step"] = "job_context"
        async with self.session_factory() as session:
            job_context = await JobRepository(session).get_job_context(task.job_id)
        logger.info(f"Job context fetched: {job_context.title}", extra=log_extra)
        await self._report(progress, PROGRESS_CONTEXT_FETCHED)
        
        # Step 3: scoring
        state["step"] = "scoring"
        scoring = await self.oracle.score(cv.text, job_context, self.weights)
        await self._report(progress, PROGRESS_SCORED)
        
        # Step 4: decision
        state["step"] = "decision"
        outcome = decide(scoring, self.rules)
        status = outcome.candidate_status
        logger.info(
            f"Decision for candidate {task.candidate_id}: {status.value} (overall {scoring.score_overall})",
            extra={**log_extra, "status": status.value}
        )
        await self._report(progress, PROGRESS_DECIDED)
        
        # Step 5: persistence and status history
        state["step"] = "persist"
        candidate = await self._persist(task.candidate_id, status, cv, scoring)
        await self._report(progress, PROGRESS_PERSISTED)
        
        # Step 6: notifications and callback, best effort
        state["step"] = "notify"
        await self._notify(outcome, candidate, job_context, scoring)
        await self._report(progress, PROGRESS_NOTIFIED)
        
        state["step"] = "callback"
        await self._best_effort("callback", self.notifier.send_callback({
            "candidateId": task.candidate_id,
            "status": status.value,
            "scores": scoring.score_breakdown(),
            "matched_skills": scoring.matched_skills,
            "missing_skills": scoring.missing_skills,
            "summary": scoring.summary,
            "notes_for_interviewer": scoring.interviewer_notes,
            "recommended_questions": scoring.recommended_questions,
        }))
        
        logger.info(f"Candidate analysis completed for {task.candidate_id}", extra=log_extra)
        return {
            "candidate_id": task.candidate_id,
            "status": status.value,
            "score": scoring.score_overall,
        }
    
    async def _persist(
        self,
        candidate_id: str,
        status: CandidateStatus,
        cv: CvDocument,
        scoring: ScoringResult
    ) -> Candidate:
        async with self.session_factory() as session:
            candidates = CandidateRepository(session)
            candidate = await candidates.save_analysis(candidate_id, status, {
                "cv_text": cv.text,
                "cv_entities": cv.entities.model_dump(mode="json", exclude_none=True),
                "ai_score": scoring.score_overall,
                "scores": scoring.score_breakdown(),
                "ai_analysis": scoring.model_dump(mode="json"),
                "notes": scoring.summary,
            })
            await candidates.append_status_history(candidate_id, status, f"AI analysis: {scoring.summary}")
            
            try:
                await ActivityLogRepository(session).log(
                    candidate_id,
                    "ai_screening_completed",
                    f"AI status: {status.value}, Score: {scoring.score_overall:g}/100",
                    {
                        "scores": scoring.score_breakdown(),
                        "status": status.value,
                        "matched_skills": scoring.matched_skills,
                        "missing_skills": scoring.missing_skills,
                    }
                )
            except Exception as e:
                logger.warning(f"Failed to write activity log for {candidate_id}: {e}", extra={"candidate_id": candidate_id})
            
            return candidate
    
    async def _notify(
        self,
        outcome: DecisionOutcome,
        candidate: Candidate,
        job_context: JobContext,
        scoring: ScoringResult
    ) -> None:
        """Recruiter is always notified; candidates only on pass or reject"""
        job_title = job_context.title or "Unknown Position"
        status = outcome.candidate_status.value
        
        await self._best_effort("recruiter notification", self.notifier.notify_recruiter(
            candidate.full_name, candidate.id, job_title, scoring.score_overall, status
        ))
        
        if outcome is DecisionOutcome.PASSED:
            await self._best_effort("interview invitation", self.notifier.send_interview_invitation(
                candidate.full_name, candidate.email, job_title
            ))
        elif outcome is DecisionOutcome.REJECTED:
            await self._best_effort("rejection feedback", self.notifier.send_rejection_feedback(
                candidate.full_name,
                candidate.email,
                job_title,
                generate_feedback_message(scoring),
                scoring.missing_skills
            ))
        # borderline goes to manual review with no candidate email
    
    async def _best_effort(self, label: str, dispatch: Awaitable[Any]) -> None:
        try:
            await dispatch
        except Exception as e:
            logger.warning(f"{label} failed: {e!r}")
    
    async def _report(self, progress: Optional[ProgressCallback], value: int) -> None:
        if progress is None:
            return
        try:
            await progress(value)
        except Exception as e:
            logger.debug(f"Progress update to {value} failed: {e!r}")
    
    async def _record_failure(self, candidate_id: str, reason: str) -> None:
        """Write processing-failed status and a history entry, each best effort"""
        try:
            async with self.session_factory() as session:
                candidates = CandidateRepository(session)
                await candidates.mark_processing_failed(candidate_id, reason)
                await candidates.append_status_history(
                    candidate_id, CandidateStatus.PROCESSING_FAILED, reason
                )
        except Exception as e:
            logger.error(
                f"Failed to record processing failure for {candidate_id}: {e!r}",
                extra={"candidate_id": candidate_id}
            )
