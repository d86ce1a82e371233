"""LINE webhook processing pipeline: routing, ingestion, extraction, notification."""

from taskbridge.messaging.dispatcher import EventDispatcher
from taskbridge.messaging.extraction import HttpTaskExtractor, TaskExtractionTrigger
from taskbridge.messaging.health import IntegrationHealthMonitor
from taskbridge.messaging.ingestor import MessageIngestor
from taskbridge.messaging.notifications import NotificationDispatcher
from taskbridge.messaging.registrar import WebhookRegistrar
from taskbridge.messaging.resolver import GroupResolver

__all__ = [
    "EventDispatcher",
    "GroupResolver",
    "HttpTaskExtractor",
    "IntegrationHealthMonitor",
    "MessageIngestor",
    "NotificationDispatcher",
    "TaskExtractionTrigger",
    "WebhookRegistrar",
]
