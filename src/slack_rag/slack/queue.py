"""
Async queue for Slack events.

Slack expects an acknowledgement within a few seconds, so the events route
only enqueues and a background worker does the embedding and answering.
"""
import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Set

from .handlers import SlackEventHandler

logger = logging.getLogger("slackrag.slack.queue")


@dataclass
class SlackEventJob:
    """A Slack event waiting to be handled."""
    kind: Literal["message", "app_mention"]
    event: Dict[str, Any] = field(default_factory=dict)
    bot_user_id: Optional[str] = None

    # Metadata for tracing
    event_id: str = "unknown"


class EventQueue:
    """Queue holding Slack event jobs."""
    def __init__(self):
        self._queue: asyncio.Queue[SlackEventJob] = asyncio.Queue()

    async def enqueue(self, job: SlackEventJob) -> int:
        """Add a job to the queue. Returns current queue size."""
        await self._queue.put(job)
        qsize = self._queue.qsize()
        logger.info("Event enqueued: %s %s (Queue size: %d)", job.kind, job.event_id, qsize)
        return qsize

    async def get_next_job(self) -> SlackEventJob:
        return await self._queue.get()

    def task_done(self):
        self._queue.task_done()

    def qsize(self) -> int:
        return self._queue.qsize()


# Global singleton
event_queue = EventQueue()


async def handle_job(job: SlackEventJob, handler: SlackEventHandler) -> None:
    if job.kind == "message":
        await handler.on_message(job.event, bot_user_id=job.bot_user_id)
    elif job.kind == "app_mention":
        await handler.on_app_mention(job.event)


def _on_job_done(
    task: "asyncio.Task[None]",
    job: SlackEventJob,
    running: Set["asyncio.Task[None]"],
    queue: EventQueue,
) -> None:
    """Log a failed event; handlers normally catch their own errors."""
    running.discard(task)
    queue.task_done()
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Unexpected error handling Slack event %s %s",
            job.kind,
            job.event_id,
            exc_info=exc,
        )


async def process_events_worker_task(handler: SlackEventHandler, queue: EventQueue = event_queue):
    """
    Background worker that consumes Slack events.

    Each event runs in its own task, so a long channel backlog does not hold
    up questions or live messages. Running tasks are cancelled when the
    worker is cancelled.
    """
    logger.info("Slack event worker started.")
    running: Set["asyncio.Task[None]"] = set()

    try:
        while True:
            job = await queue.get_next_job()
            task = asyncio.create_task(handle_job(job, handler))
            running.add(task)
            task.add_done_callback(functools.partial(_on_job_done, job=job, running=running, queue=queue))
    except asyncio.CancelledError:
        logger.info("Slack event worker cancelled (%d events in flight).", len(running))
        for task in list(running):
            task.cancel()
        await asyncio.gather(*running, return_exceptions=True)
