"""Notification Service Implementations

Operator alerts for inventory shortages and reconciliation discrepancies.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
import httpx
from storefront.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs alerts

    Useful for development and testing, or as a fallback.
    """

    async def send_operator_alert(self, alert_type: str, message: str, context: Dict[str, Any]) -> bool:
        details = ", ".join(f"{key}: {value}" for key, value in context.items())
        logger.warning(f"[OPERATOR ALERT] {alert_type}: {message} ({details})")
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that sends alerts via HTTP webhook

    Sends JSON payload to configured webhook URL.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        """
        Args:
            webhook_url: URL to POST alerts to
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def send_operator_alert(self, alert_type: str, message: str, context: Dict[str, Any]) -> bool:
        payload = {
            "type": alert_type,
            "message": message,
            "context": {key: str(value) for key, value in context.items()},
            "sent_at": datetime.utcnow().isoformat(),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
                logger.info(f"Webhook notification '{alert_type}' sent to {self.webhook_url}")
                return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook notification '{alert_type}': {e}")
            return False


class CompositeNotificationService(NotificationService):
    """
    Notification service that delegates to multiple services

    Useful for sending to multiple channels (e.g., log + webhook).
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def send_operator_alert(self, alert_type: str, message: str, context: Dict[str, Any]) -> bool:
        """
        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.send_operator_alert(alert_type, message, context):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
