"""Durable analysis task queue backed by Redis"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from screener.app.core.config import settings
from screener.app.core.exceptions import QueueUnavailableException
from screener.app.core.logging import get_logger
from screener.app.schemas.task import AnalysisTask, TaskHandle, TaskRecord, TaskStatus

logger = get_logger(__name__)

# KEYS: waiting, delayed, active. ARGV: now.
# Promotes ready delayed payloads, pops the oldest waiting payload and records
# it as active in one step. Returns nil or {payload, promoted_count}.
CLAIM_TASK_SCRIPT = """
local ready = redis.call('ZRANGEBYSCORE', KEYS[2], '-inf', ARGV[1])
for _, payload in ipairs(ready) do
    redis.call('ZREM', KEYS[2], payload)
    redis.call('ZADD', KEYS[1], ARGV[1], payload)
end
local popped = redis.call('ZPOPMIN', KEYS[1])
if #popped == 0 then
    return false
end
local payload = popped[1]
local task_id = string.match(payload, '"task_id":"(.-)"')
redis.call('HSET', KEYS[3], task_id, payload)
return {payload, #ready}
"""


class TaskQueue:
    """
    Redis-based queue for candidate analysis tasks
    
    Layout under ``queue_name``:
    
    - ``:waiting``  sorted set of task payloads scored by enqueue time (FIFO)
    - ``:delayed``  sorted set of payloads scored by the time they become ready
    - ``:active``   hash of task_id -> payload for tasks currently in flight
    - ``:dead``     sorted set of task ids whose attempts are exhausted, scored by failure time
    - ``:status:<task_id>``  TaskRecord JSON, expiring after the retention window
    
    Every move of a payload between these keys is a single script call or a
    MULTI/EXEC transaction, so a payload is never lost between two keys nor
    present in two of them.
    """
    
    def __init__(
        self,
        redis_url: str = None,
        queue_name: str = None,
        backoff_base_seconds: float = None,
        completed_retention_seconds: int = None,
        failed_retention_seconds: int = None,
        poll_interval_seconds: float = 0.5
    ):
        """Initialize task queue with Redis connection settings"""
        self.redis_url = redis_url or settings.REDIS_URL
        self._redis: Optional[Redis] = None
        self.queue_name = queue_name or settings.QUEUE_NAME
        self.waiting_key = f"{self.queue_name}:waiting"
        self.delayed_key = f"{self.queue_name}:delayed"
        self.active_key = f"{self.queue_name}:active"
        self.dead_key = f"{self.queue_name}:dead"
        self.status_prefix = f"{self.queue_name}:status"
        self.backoff_base_seconds = (
            backoff_base_seconds if backoff_base_seconds is not None else settings.TASK_BACKOFF_BASE_SECONDS
        )
        self.completed_retention_seconds = completed_retention_seconds or settings.COMPLETED_RETENTION_SECONDS
        self.failed_retention_seconds = failed_retention_seconds or settings.FAILED_RETENTION_SECONDS
        self.poll_interval_seconds = poll_interval_seconds
    
    async def connect(self) -> None:
        """Establish Redis connection"""
        try:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                retry_on_timeout=True
            )
            await self._redis.ping()
            logger.info("Connected to Redis task queue")
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise QueueUnavailableException(f"Task queue unavailable: {e}") from e
    
    async def disconnect(self) -> None:
        """Close Redis connection"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis task queue")
    
    async def _client(self) -> Redis:
        if not self._redis:
            await self.connect()
        return self._redis
    
    @staticmethod
    def _now() -> float:
        return datetime.now(timezone.utc).timestamp()
    
    def _status_key(self, task_id: str) -> str:
        return f"{self.status_prefix}:{task_id}"
    
    def backoff_delay(self, failed_attempts: int) -> float:
        """Exponential delay before the next attempt: base, 2*base, 4*base, ..."""
        return self.backoff_base_seconds * (2 ** max(0, failed_attempts - 1))
    
    @staticmethod
    def _status_json(
        task: AnalysisTask,
        status: TaskStatus,
        progress: int = 0,
        result_data: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None
    ) -> str:
        return TaskRecord(
            task_id=task.task_id,
            status=status,
            task=task.model_dump(mode="json"),
            attempt=task.attempt,
            progress=progress,
            result_data=result_data,
            error_message=error_message,
        ).model_dump_json()
    
    async def enqueue(self, task: AnalysisTask) -> TaskHandle:
        """
        Add a task to the waiting set
        
        Raises:
            QueueUnavailableException: If Redis cannot accept the write
        """
        try:
            client = await self._client()
            pipe = client.pipeline(transaction=True)
            pipe.setex(
                self._status_key(task.task_id),
                self.failed_retention_seconds,
                self._status_json(task, TaskStatus.QUEUED)
            )
            pipe.zadd(self.waiting_key, {task.model_dump_json(): self._now()})
            await pipe.execute()
        except RedisError as e:
            logger.error(f"Failed to enqueue task {task.task_id}: {e}", extra={"task_id": task.task_id})
            raise QueueUnavailableException(f"Failed to enqueue task: {e}") from e
        
        logger.info(
            f"Enqueued analysis task {task.task_id}",
            extra={"task_id": task.task_id, "candidate_id": task.candidate_id}
        )
        return TaskHandle(task_id=task.task_id, candidate_id=task.candidate_id, status=TaskStatus.QUEUED)
    
    async def _claim(self) -> Optional[str]:
        """Atomically promote ready delayed tasks and move the oldest waiting task to active"""
        client = await self._client()
        claim = client.register_script(CLAIM_TASK_SCRIPT)
        result = await claim(keys=[self.waiting_key, self.delayed_key, self.active_key], args=[self._now()])
        if not result:
            return None
        
        task_json, promoted = result
        if int(promoted):
            logger.info(f"Moved {promoted} delayed tasks to waiting queue")
        return task_json
    
    async def dequeue(self, timeout: float = 5) -> Optional[AnalysisTask]:
        """
        Claim the oldest ready task and mark it in flight
        
        Args:
            timeout: Seconds to keep polling for a task
        
        Returns:
            The task, or None if none became available
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        
        while True:
            task_json = await self._claim()
            if task_json:
                break
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            await asyncio.sleep(min(self.poll_interval_seconds, remaining))
        
        task = AnalysisTask.model_validate_json(task_json)
        client = await self._client()
        await client.setex(
            self._status_key(task.task_id),
            self.failed_retention_seconds,
            self._status_json(task, TaskStatus.PROCESSING)
        )
        
        logger.info(
            f"Dequeued task {task.task_id} (attempt {task.attempt + 1}/{task.max_attempts})",
            extra={"task_id": task.task_id, "candidate_id": task.candidate_id, "attempt": task.attempt + 1}
        )
        return task
    
    async def update_progress(self, task_id: str, progress: int) -> None:
        """Raise the recorded progress of a task; lower values are ignored"""
        client = await self._client()
        key = self._status_key(task_id)
        raw = await client.get(key)
        if not raw:
            return
        record = TaskRecord.model_validate_json(raw)
        if progress <= record.progress:
            return
        record.progress = min(100, progress)
        record.updated_at = datetime.now(timezone.utc)
        await client.set(key, record.model_dump_json(), keepttl=True)
    
    async def complete(self, task: AnalysisTask, result_data: Optional[Dict[str, Any]] = None) -> None:
        """Mark a task as done; its record is kept for the completed retention window"""
        client = await self._client()
        done = task.model_copy(update={"attempt": task.attempt + 1})
        
        pipe = client.pipeline(transaction=True)
        pipe.hdel(self.active_key, task.task_id)
        pipe.setex(
            self._status_key(task.task_id),
            self.completed_retention_seconds,
            self._status_json(done, TaskStatus.COMPLETED, progress=100, result_data=result_data)
        )
        await pipe.execute()
        logger.info(f"Completed task {task.task_id}", extra={"task_id": task.task_id, "candidate_id": task.candidate_id})
    
    async def fail(self, task: AnalysisTask, error_message: str) -> bool:
        """
        Record a failed attempt and schedule a retry if attempts remain
        
        Returns:
            True if the task was scheduled for another attempt, False if it is now dead
        """
        client = await self._client()
        failed = task.model_copy(update={"attempt": task.attempt + 1})
        retry = failed.attempts_remaining > 0
        
        pipe = client.pipeline(transaction=True)
        pipe.hdel(self.active_key, task.task_id)
        if retry:
            delay = self.backoff_delay(failed.attempt)
            pipe.zadd(self.delayed_key, {failed.model_dump_json(): self._now() + delay})
            pipe.setex(
                self._status_key(task.task_id),
                self.failed_retention_seconds,
                self._status_json(failed, TaskStatus.DELAYED, error_message=error_message)
            )
        else:
            pipe.setex(
                self._status_key(task.task_id),
                self.failed_retention_seconds,
                self._status_json(failed, TaskStatus.FAILED, error_message=error_message)
            )
            pipe.zadd(self.dead_key, {task.task_id: self._now()})
        await pipe.execute()
        
        if retry:
            logger.warning(
                f"Task {task.task_id} failed attempt {failed.attempt}/{failed.max_attempts}, "
                f"retrying in {delay:.0f}s ({failed.attempts_remaining} attempts left)",
                extra={"task_id": task.task_id, "candidate_id": task.candidate_id, "attempt": failed.attempt}
            )
        else:
            logger.error(
                f"Task {task.task_id} exhausted {failed.max_attempts} attempts: {error_message}",
                extra={"task_id": task.task_id, "candidate_id": task.candidate_id, "attempt": failed.attempt}
            )
        return retry
    
    async def requeue_orphaned(self) -> int:
        """
        Return in-flight tasks to the waiting set
        
        Only call this before any worker of this queue is running, e.g. at
        process start after a crash.
        """
        client = await self._client()
        orphaned = await client.hgetall(self.active_key)
        for task_id, task_json in orphaned.items():
            pipe = client.pipeline(transaction=True)
            pipe.zadd(self.waiting_key, {task_json: self._now()})
            pipe.hdel(self.active_key, task_id)
            await pipe.execute()
        if orphaned:
            logger.warning(f"Re-queued {len(orphaned)} tasks left in flight by a previous process")
        return len(orphaned)
    
    async def get_task_status(self, task_id: str) -> Optional[TaskRecord]:
        """Get the status record of a task, if still retained"""
        client = await self._client()
        raw = await client.get(self._status_key(task_id))
        if not raw:
            return None
        return TaskRecord.model_validate_json(raw)
    
    async def retry_dead_task(self, task_id: str) -> Optional[TaskHandle]:
        """
        Re-enqueue a dead task with a fresh attempt budget
        
        Returns:
            Handle of the re-enqueued task, or None if the task is not dead
            or its record has expired
        """
        record = await self.get_task_status(task_id)
        if record is None or record.status != TaskStatus.FAILED:
            logger.warning(f"Task {task_id} is not a dead task, not retrying")
            return None
        
        task = AnalysisTask.model_validate(record.task).model_copy(update={"attempt": 0})
        client = await self._client()
        await client.zrem(self.dead_key, task_id)
        logger.info(f"Manually retrying dead task {task_id}", extra={"task_id": task_id})
        return await self.enqueue(task)
    
    async def cleanup_dead_tasks(self) -> int:
        """Drop dead-task index entries older than the failed retention window"""
        client = await self._client()
        cutoff = self._now() - self.failed_retention_seconds
        return await client.zremrangebyscore(self.dead_key, 0, cutoff)
    
    async def get_queue_stats(self) -> Dict[str, int]:
        """
        Get queue statistics
        
        Returns:
            Dictionary with task counts per set
        """
        client = await self._client()
        stats = {
            "waiting_tasks": await client.zcard(self.waiting_key),
            "delayed_tasks": await client.zcard(self.delayed_key),
            "active_tasks": await client.hlen(self.active_key),
            "dead_tasks": await client.zcard(self.dead_key),
        }
        stats["total_tasks"] = stats["waiting_tasks"] + stats["delayed_tasks"] + stats["active_tasks"]
        return stats
