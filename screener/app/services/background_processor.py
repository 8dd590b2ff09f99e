"""Worker pool consuming analysis tasks from the queue"""

import asyncio
import traceback
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from screener.app.core.logging import get_logger
from screener.app.core.rate_limit import SlidingWindowRateLimiter
from screener.app.core.task_queue import TaskQueue
from screener.app.schemas.task import AnalysisTask

logger = get_logger(__name__)

TaskHandler = Callable[[AnalysisTask, Callable[[int], Awaitable[None]]], Awaitable[Dict[str, Any]]]


class BackgroundProcessor:
    """Runs a fixed number of workers that pull tasks and hand them to ``handler``"""
    
    def __init__(
        self,
        task_queue: TaskQueue,
        handler: TaskHandler,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        poll_timeout: int = 5
    ):
        self.task_queue = task_queue
        self.handler = handler
        self.rate_limiter = rate_limiter
        self.poll_timeout = poll_timeout
        self.is_running = False
        self.worker_tasks: List[asyncio.Task] = []
    
    async def start_workers(self, num_workers: int = 2) -> None:
        """
        Start background workers
        
        Args:
            num_workers: Number of concurrent workers
        """
        if self.is_running:
            logger.warning("Workers are already running")
            return
        
        self.is_running = True
        for i in range(num_workers):
            worker_task = asyncio.create_task(
                self._worker_loop(worker_id=i),
                name=f"analysis_worker_{i}"
            )
            self.worker_tasks.append(worker_task)
        
        logger.info(f"Started {num_workers} background workers")
    
    async def stop_workers(self) -> None:
        """Stop all background workers"""
        if not self.is_running:
            logger.warning("Workers are not running")
            return
        
        logger.info("Stopping background workers")
        self.is_running = False
        
        for task in self.worker_tasks:
            task.cancel()
        
        if self.worker_tasks:
            await asyncio.gather(*self.worker_tasks, return_exceptions=True)
        
        self.worker_tasks.clear()
        logger.info("Stopped all background workers")
    
    async def _worker_loop(self, worker_id: int) -> None:
        """
        Main worker loop; one task is processed to the end before the next is taken
        
        Args:
            worker_id: Identifier of this worker
        """
        logger.info(f"Worker {worker_id} started", extra={"worker_id": worker_id})
        
        while self.is_running:
            try:
                task = await self._next_task()
                if not task:
                    continue
                
                await self.process_task(task, worker_id)
            
            except asyncio.CancelledError:
                logger.info(f"Worker {worker_id} cancelled", extra={"worker_id": worker_id})
                break
            except Exception as e:
                logger.error(f"Worker {worker_id} error: {e}", extra={"worker_id": worker_id})
                await asyncio.sleep(1)
        
        logger.info(f"Worker {worker_id} stopped", extra={"worker_id": worker_id})
    
    async def _next_task(self) -> Optional[AnalysisTask]:
        """
        Take a rate-limit slot, then dequeue
        
        The slot is taken first so a throttled task stays waiting in the queue.
        It is given back when nothing was dequeued.
        """
        if not self.rate_limiter:
            return await self.task_queue.dequeue(timeout=self.poll_timeout)
        
        started = await self.rate_limiter.acquire()
        task = None
        try:
            task = await self.task_queue.dequeue(timeout=self.poll_timeout)
        finally:
            if task is None:
                self.rate_limiter.release(started)
        return task
    
    async def process_task(self, task: AnalysisTask, worker_id: int = 0) -> bool:
        """
        Run the handler for one task and report the outcome to the queue
        
        Returns:
            True if the task completed, False if the attempt failed
        """
        log_extra = {"worker_id": worker_id, "task_id": task.task_id, "candidate_id": task.candidate_id}
        logger.info(f"Worker {worker_id} processing task {task.task_id}", extra=log_extra)
        
        async def report_progress(value: int) -> None:
            await self.task_queue.update_progress(task.task_id, value)
        
        start_time = datetime.now(timezone.utc)
        try:
            result = await self.handler(task, report_progress)
        except Exception as e:
            error_message = f"Task failed: {e}"
            logger.error(f"Worker {worker_id} failed task {task.task_id}: {error_message}", extra=log_extra)
            logger.debug(f"Task failure traceback: {traceback.format_exc()}")
            await self.task_queue.fail(task, error_message)
            return False
        
        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        await self.task_queue.complete(task, {
            "result": result,
            "processing_time_seconds": elapsed
        })
        logger.info(f"Worker {worker_id} completed task {task.task_id} in {elapsed:.1f}s", extra=log_extra)
        return True
