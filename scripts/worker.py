#!/usr/bin/env python3
"""Worker process consuming candidate analysis tasks"""

import asyncio
import logging
import signal
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from screener.app.core.config import settings
from screener.app.core.logging import setup_logging
from screener.app.services.runtime import PipelineRuntime

logger = logging.getLogger(__name__)


class WorkerManager:
    """Runs a PipelineRuntime until SIGTERM or SIGINT"""
    
    def __init__(self, num_workers: int = 2, runtime: PipelineRuntime = None):
        self.num_workers = num_workers
        self.runtime = runtime or PipelineRuntime()
        self.shutdown_event = asyncio.Event()
    
    async def start(self):
        """Start the runtime and block until a shutdown signal arrives"""
        logger.info(f"Starting worker manager with {self.num_workers} workers")
        
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._signal_handler, sig)
        
        try:
            await self.runtime.start(self.num_workers)
            
            stats = await self.runtime.task_queue.get_queue_stats()
            logger.info(f"Queue stats at start: {stats}")
            
            await self.shutdown_event.wait()
        
        except Exception as e:
            logger.error(f"Worker manager error: {e}")
            raise
        finally:
            await self.runtime.shutdown()
            logger.info("Worker manager stopped")
    
    def _signal_handler(self, signum):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, initiating shutdown")
        self.shutdown_event.set()


async def main():
    """Main worker entry point"""
    import argparse
    
    parser = argparse.ArgumentParser(description="CV screening analysis worker")
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.WORKER_CONCURRENCY,
        help=f"Number of concurrent workers (default: {settings.WORKER_CONCURRENCY})"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL,
        help=f"Log level (default: {settings.LOG_LEVEL})"
    )
    
    args = parser.parse_args()
    setup_logging(args.log_level)
    
    logger.info("Starting CV screening worker")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Queue: {settings.QUEUE_NAME}")
    logger.info(f"Workers: {args.workers}")
    
    manager = WorkerManager(num_workers=args.workers)
    
    try:
        await manager.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Worker failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
