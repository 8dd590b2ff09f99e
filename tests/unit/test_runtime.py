"""Unit tests for the pipeline runtime"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from screener.app.core.config import Settings
from screener.app.core.exceptions import NotFoundException
from screener.app.models import Candidate, CandidateStatus
from screener.app.schemas.task import TaskHandle, TaskStatus
from screener.app.services.runtime import PipelineRuntime


async def idle_dequeue(timeout):
    await asyncio.sleep(0.01)
    return None


@pytest.fixture
def task_queue():
    queue = AsyncMock()
    queue.dequeue.side_effect = idle_dequeue
    queue.enqueue.side_effect = lambda task: TaskHandle(
        task_id=task.task_id, candidate_id=task.candidate_id, status=TaskStatus.QUEUED
    )
    return queue


@pytest.fixture
def runtime(task_queue, session_factory):
    config = Settings(TASK_MAX_ATTEMPTS=4, WORKER_CONCURRENCY=2)
    return PipelineRuntime(
        config=config,
        task_queue=task_queue,
        pipeline=AsyncMock(),
        session_factory=session_factory,
    )


class TestPipelineRuntime:
    
    @pytest.mark.asyncio
    async def test_start_recovers_orphans_and_starts_workers(self, runtime, task_queue):
        await runtime.start()
        
        task_queue.connect.assert_awaited_once()
        task_queue.requeue_orphaned.assert_awaited_once()
        assert len(runtime.processor.worker_tasks) == 2
        
        await runtime.shutdown()
        
        assert not runtime.processor.is_running
        task_queue.disconnect.assert_awaited_once()
    
    @pytest.mark.asyncio
    async def test_enqueue_candidate_analysis(self, runtime, task_queue):
        handle = await runtime.enqueue_candidate_analysis("cand-7", "cvs/cand-7/cv.pdf", "job-1")
        
        assert handle.candidate_id == "cand-7"
        [task] = task_queue.enqueue.call_args.args
        assert task.cv_location == "cvs/cand-7/cv.pdf"
        assert task.job_id == "job-1"
        assert task.max_attempts == 4
        assert task.task_id.startswith("candidate-cand-7-")
    
    @pytest.mark.asyncio
    async def test_reanalyze_uses_stored_cv(self, runtime, task_queue, sample_candidate):
        await runtime.reanalyze_candidate(sample_candidate.id)
        
        [task] = task_queue.enqueue.call_args.args
        assert task.candidate_id == sample_candidate.id
        assert task.cv_location == sample_candidate.cv_url
        assert task.job_id == sample_candidate.job_id
    
    @pytest.mark.asyncio
    async def test_reanalyze_with_other_job(self, runtime, task_queue, sample_candidate):
        await runtime.reanalyze_candidate(sample_candidate.id, job_id="job-2")
        
        assert task_queue.enqueue.call_args.args[0].job_id == "job-2"
    
    @pytest.mark.asyncio
    async def test_reanalyze_unknown_candidate(self, runtime):
        with pytest.raises(NotFoundException):
            await runtime.reanalyze_candidate("nobody")
    
    @pytest.mark.asyncio
    async def test_reanalyze_without_cv(self, runtime, session_factory):
        async with session_factory() as session:
            session.add(Candidate(id="no-cv", full_name="No CV", status=CandidateStatus.PENDING, status_history=[]))
            await session.commit()
        
        with pytest.raises(NotFoundException):
            await runtime.reanalyze_candidate("no-cv")
