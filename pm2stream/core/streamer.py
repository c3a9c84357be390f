"""
Process log streaming module for pm2stream.

This module attaches to the log stream of a PM2-managed process, turns every
line into a LogRecord and fans it out to the log store, to real-time
subscribers and, for error and critical records, to the webhook notifier.
Every external effect is best-effort: failures are logged and never reach the
caller or the line reading loop.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from ..config.settings import Settings
from ..parsers.log_parser import PM2LogParser, split_chunk
from ..utils.time_utils import TimeUtils
from .event_bus import EventBus, LogEvent, QueueSubscription
from .models import LogLevel, LogRecord


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """
    Delay before reconnect attempt number ``attempt`` (1-based).

    Args:
        attempt: Attempt number, already incremented
        base_delay: Delay unit in seconds
        max_delay: Upper bound in seconds

    Returns:
        ``min(base_delay * 2**attempt, max_delay)``
    """
    return min(base_delay * (2 ** attempt), max_delay)


class ProcessLogStreamer:
    """
    Streams, parses and fans out the logs of one PM2 process.

    States: ``disabled``, ``idle``, ``attached``, ``reconnecting`` and
    ``stopped`` (reconnect attempts exhausted). Must be driven from a running
    asyncio event loop.
    """

    def __init__(self, config, process_source, store, notifier=None,
                 event_bus: Optional[EventBus] = None,
                 parser: Optional[PM2LogParser] = None,
                 scheduler: Optional[Callable[[float, Callable[[], None]], Any]] = None):
        """
        Initialize the streamer.

        Args:
            config: Application configuration
            process_source: Object whose ``open()`` coroutine returns an attachment
            store: Log store receiving every record
            notifier: Optional webhook notifier for error and critical records
            event_bus: Registry of real-time subscribers (a private one by default)
            parser: Line parser (built from config by default)
            scheduler: ``call_later``-style callable for reconnect timers
        """
        self.config = config
        self.process_source = process_source
        self.store = store
        self.notifier = notifier
        self.event_bus = event_bus or EventBus()
        self.parser = parser or PM2LogParser(config)
        self.logger = logging.getLogger(__name__)
        self._scheduler = scheduler

        self.enabled = bool(config.streamer.enabled)
        self.streaming = False
        self.reconnect_attempts = 0
        self._exhausted = False
        # Bumped by stop(); attaches started before that are stale
        self._generation = 0

        self._attachment = None
        self._reader_task: Optional[asyncio.Task] = None
        self._attach_task: Optional[asyncio.Task] = None
        self._reconnect_handle = None
        self._background: Set[asyncio.Task] = set()

    @property
    def process_name(self) -> str:
        return self.parser.source

    @property
    def max_reconnect_attempts(self) -> int:
        return self.config.reconnect.max_attempts

    @property
    def state(self) -> str:
        if not self.enabled:
            return 'disabled'
        if self.streaming:
            return 'attached' if self._attachment is not None else 'reconnecting'
        if self._exhausted:
            return 'stopped'
        return 'idle'

    # Controls

    async def start(self):
        """Start streaming logs from the configured PM2 process."""
        if not self.enabled:
            self.logger.info("PM2 log streaming is disabled")
            return

        if self.streaming:
            self.logger.info("PM2 log streaming already active")
            return

        self.logger.info(f"Starting PM2 log streaming for {self.process_name}...")
        self.streaming = True
        if self._exhausted:
            self._exhausted = False
            self.reconnect_attempts = 0
        await self._attach()

    def stop(self):
        """Stop streaming; kills the attachment and cancels any pending reconnect."""
        self.logger.info("Stopping PM2 log streaming...")
        self.streaming = False
        self._generation += 1

        attachment, self._attachment = self._attachment, None
        if attachment is not None:
            attachment.kill()

        for task in (self._reader_task, self._attach_task):
            if task is not None and not task.done():
                task.cancel()
        self._reader_task = None
        self._attach_task = None

        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def enable(self):
        self.enabled = True
        self.logger.info("PM2 log streaming enabled")

    def disable(self):
        self.enabled = False
        self.stop()
        self.logger.info("PM2 log streaming disabled")

    async def restart(self):
        """Stop and start streaming again."""
        self.stop()
        await self.start()

    async def set_enabled(self, enabled: bool) -> Dict[str, Any]:
        """
        Apply the operator's streaming toggle.

        Args:
            enabled: True to enable and start, False to disable

        Returns:
            Status snapshot after the change
        """
        if enabled:
            self.enable()
            await self.start()
        else:
            self.disable()
        return self.get_status()

    def get_status(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'streaming': self.streaming,
            'reconnect_attempts': self.reconnect_attempts,
        }

    async def get_recent_logs(self, limit: int = Settings.DEFAULT_RECENT_LIMIT) -> List[Dict[str, Any]]:
        """
        Get the most recent persisted records of the monitored process.

        Args:
            limit: Maximum number of records

        Returns:
            Store documents, newest first; empty if the store fails
        """
        try:
            return await self.store.recent(self.process_name, limit)
        except Exception as e:
            self.logger.error(f"Failed to fetch recent PM2 logs: {e}")
            return []

    def test_log_entry(self, record: LogRecord):
        """
        Run a caller-supplied record through the persist, publish and notify
        pipeline, as if it had been read from the process.
        """
        try:
            self._dispatch(record)
            self.logger.info(f"Test log entry processed: {record.level.value} - {record.message}")
        except Exception as e:
            self.logger.error(f"Error processing test log entry: {e}")

    # Subscribers

    def subscribe(self, handler: Callable):
        """Register a handler called with a LogEvent for every record."""
        self.event_bus.subscribe(Settings.LOG_EVENT, handler)

    def unsubscribe(self, handler: Callable):
        self.event_bus.unsubscribe(Settings.LOG_EVENT, handler)

    def open_subscription(self, maxsize: int = Settings.DEFAULT_SUBSCRIPTION_QUEUE_SIZE) -> QueueSubscription:
        """Open an async-iterable subscription yielding LogRecords."""
        return self.event_bus.open_subscription(Settings.LOG_EVENT, maxsize)

    async def drain(self):
        """Wait for all dispatched persistence and notification tasks."""
        while True:
            pending = [task for task in self._background if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self):
        """Stop streaming, flush background work and close the store."""
        self.stop()
        await self.drain()
        self.store.close()

    # Attachment and reconnect

    async def _attach(self):
        generation = self._generation
        try:
            attachment = await self.process_source.open()
        except Exception as e:
            self.logger.error(f"Failed to start PM2 logs process: {e}")
            if self.streaming and generation == self._generation:
                self._schedule_reconnect()
            return

        if not self.streaming or generation != self._generation:
            # Stopped or restarted while the process was spawning
            self.logger.debug("Discarding PM2 logs process spawned before stop")
            attachment.kill()
            return

        self._attachment = attachment
        self.reconnect_attempts = 0
        self._reader_task = asyncio.get_running_loop().create_task(self._consume(attachment))
        self.logger.info("PM2 log streaming started successfully")

    async def _consume(self, attachment):
        try:
            await asyncio.gather(
                self._pump(attachment.stdout, LogLevel.INFO),
                self._pump(attachment.stderr, LogLevel.ERROR),
            )
            exit_code = await attachment.wait()
            self.logger.info(f"PM2 logs process closed with code {exit_code}")
        except Exception as e:
            self.logger.error(f"PM2 logs process error: {e}")
            attachment.kill()

        if self._attachment is not attachment:
            return
        self._attachment = None
        self._reader_task = None
        if self.streaming:
            self._schedule_reconnect()

    async def _pump(self, stream, default_level: LogLevel):
        if stream is None:
            return
        chunk_size = self.config.streamer.chunk_size
        while True:
            chunk = await stream.read(chunk_size)
            if not chunk:
                return
            if default_level == LogLevel.ERROR:
                self.logger.debug(f"PM2 logs stderr: {chunk!r}")
            for line in split_chunk(chunk):
                self.process_line(line, default_level)

    def _schedule_reconnect(self):
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            self.logger.error("Max reconnection attempts reached. Stopping PM2 log streaming.")
            self.streaming = False
            self._exhausted = True
            return

        self.reconnect_attempts += 1
        delay = backoff_delay(self.reconnect_attempts,
                              self.config.reconnect.base_delay,
                              self.config.reconnect.max_delay)
        self.logger.info(
            f"Reconnecting to PM2 logs in {TimeUtils.format_duration(delay)} "
            f"(attempt {self.reconnect_attempts}/{self.max_reconnect_attempts})"
        )

        scheduler = self._scheduler or asyncio.get_running_loop().call_later
        self._reconnect_handle = scheduler(delay, self._on_reconnect_due)

    def _on_reconnect_due(self):
        self._reconnect_handle = None
        if self.streaming:
            self._attach_task = asyncio.get_running_loop().create_task(self._attach())

    # Pipeline

    def process_line(self, line: str, default_level: LogLevel = LogLevel.INFO) -> Optional[LogRecord]:
        """
        Parse one raw line and fan the record out.

        Args:
            line: Raw line from the process
            default_level: ``error`` for stderr, ``info`` otherwise

        Returns:
            The produced record, or None for blank or unparseable lines
        """
        if not line.strip():
            return None

        try:
            record = self.parser.parse_line(line, default_level)
            self._dispatch(record)
        except Exception as e:
            self.logger.error(f"Error processing PM2 log line: {e}")
            return None
        return record

    def _dispatch(self, record: LogRecord):
        try:
            self._spawn(self._persist(record))
        except Exception as e:
            self.logger.error(f"Failed to schedule PM2 log persistence: {e}")

        self.event_bus.publish(LogEvent(type=Settings.LOG_EVENT, data=record, source=record.source))

        try:
            self._notify_if_needed(record)
        except Exception as e:
            self.logger.error(f"Failed to schedule Discord notification for PM2 log: {e}")

    def _spawn(self, coro) -> asyncio.Task:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _persist(self, record: LogRecord):
        try:
            await self.store.save(record)
        except Exception as e:
            self.logger.error(f"Failed to save PM2 log to store: {e}")

    def _notify_if_needed(self, record: LogRecord):
        if not record.level.is_alert:
            return

        if self.notifier is None or not self.notifier.is_configured():
            return

        self._spawn(self._send_notification(record))

    async def _send_notification(self, record: LogRecord):
        try:
            await self.notifier.send_log_alert(record)
        except Exception as e:
            self.logger.error(f"Failed to send Discord notification for PM2 log: {e}")
