"""
Event bus module for pm2stream.

This module provides the observer registry used to fan streamed log records
out to real-time subscribers. Delivery is at-most-once: subscribers that
connect later get no replay, and publishing with no subscribers is a no-op.
"""

import asyncio
import threading
from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass
from datetime import datetime
import logging

from .exceptions import SubscriptionClosed


# Queued by close() to wake consumers
_CLOSED = object()


@dataclass
class Event:
    """
    Base event class for the event bus system.
    """
    type: str
    data: Any = None
    timestamp: datetime = None
    source: str = None
    
    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


class LogEvent(Event):
    """Event carrying a newly produced log record."""
    pass


class EventBus:
    """
    Registry of subscribers for published events.
    """
    
    def __init__(self):
        """Initialize the event bus."""
        self._handlers: Dict[str, List[Callable]] = {}
        self._lock = threading.RLock()
        self.logger = logging.getLogger(__name__)
    
    def subscribe(self, event_type: str, handler: Callable):
        """
        Subscribe to an event type.
        
        Args:
            event_type: Type of event to subscribe to
            handler: Function to call when event is published
        """
        with self._lock:
            if event_type not in self._handlers:
                self._handlers[event_type] = []
            self._handlers[event_type].append(handler)
            self.logger.debug(f"Subscribed to event type: {event_type}")
    
    def unsubscribe(self, event_type: str, handler: Callable):
        """
        Unsubscribe from an event type.
        
        Args:
            event_type: Type of event to unsubscribe from
            handler: Handler function to remove
        """
        with self._lock:
            if event_type in self._handlers:
                try:
                    self._handlers[event_type].remove(handler)
                    self.logger.debug(f"Unsubscribed from event type: {event_type}")
                except ValueError:
                    pass # Handler was not subscribed
    
    def open_subscription(self, event_type: str, maxsize: int = 0) -> 'QueueSubscription':
        """
        Subscribe an asyncio queue to an event type.
        
        Args:
            event_type: Type of event to subscribe to
            maxsize: Queue bound; events are dropped while the queue is full
            
        Returns:
            Subscription that can be iterated with ``async for``
        """
        subscription = QueueSubscription(self, event_type, maxsize)
        self.subscribe(event_type, subscription.deliver)
        return subscription
    
    def publish(self, event: Union[Event, str], data: Any = None, source: str = None) -> int:
        """
        Publish an event to all subscribed handlers.
        
        Args:
            event: Event object or event type string
            data: Data to include with the event (if event is a string)
            source: Source identifier for the event
            
        Returns:
            Number of handlers that received the event without raising
        """
        if isinstance(event, str):
            event = Event(type=event, data=data, source=source)
        
        with self._lock:
            handlers = list(self._handlers.get(event.type, []))
        
        if not handlers:
            return 0
        
        self.logger.debug(f"Publishing event: {event.type} from {event.source or 'unknown'}")
        
        # Execute handlers (outside the lock to prevent deadlocks)
        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                self.logger.error(f"Error in event handler for {event.type}: {str(e)}")
        return delivered
    
    def subscriber_count(self, event_type: str) -> int:
        """Return the number of handlers subscribed to an event type."""
        with self._lock:
            return len(self._handlers.get(event_type, []))
    
    def clear_subscribers(self, event_type: str = None):
        """
        Clear subscribers for a specific event type or all types.
        
        Args:
            event_type: Event type to clear, or None to clear all
        """
        with self._lock:
            if event_type:
                if event_type in self._handlers:
                    del self._handlers[event_type]
                self.logger.debug(f"Cleared subscribers for event type: {event_type}")
            else:
                self._handlers.clear()
                self.logger.debug("Cleared all subscribers")


class QueueSubscription:
    """
    Bounded asyncio queue fed by the event bus.
    
    Iterating yields the ``data`` of each event in publication order and ends
    once the subscription is closed and drained.
    """
    
    def __init__(self, bus: EventBus, event_type: str, maxsize: int = 0):
        self.bus = bus
        self.event_type = event_type
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False
        self.logger = logging.getLogger(__name__)
    
    def deliver(self, event: Event):
        if self.closed:
            return
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            self.logger.debug(f"Subscription queue full, dropped event {event.type}")
    
    async def get(self, timeout: Optional[float] = None) -> Any:
        """
        Wait for the next event's data.
        
        Args:
            timeout: Seconds to wait, or None to wait forever
            
        Returns:
            Data of the next event
            
        Raises:
            SubscriptionClosed: If the subscription is closed and drained
        """
        if self.closed and self.queue.empty():
            raise SubscriptionClosed(f"Subscription to {self.event_type} is closed")
        
        if timeout is None:
            event = await self.queue.get()
        else:
            event = await asyncio.wait_for(self.queue.get(), timeout)
        
        if event is _CLOSED:
            # Leave the marker for any other waiting consumer
            self.queue.put_nowait(_CLOSED)
            raise SubscriptionClosed(f"Subscription to {self.event_type} is closed")
        return event.data
    
    def close(self):
        """Stop receiving events and wake any waiting consumer."""
        if self.closed:
            return
        self.closed = True
        self.bus.unsubscribe(self.event_type, self.deliver)
        try:
            self.queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass # Nobody is waiting on a full queue
    
    def __aiter__(self):
        return self
    
    async def __anext__(self) -> Any:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
