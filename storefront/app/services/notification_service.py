"""Notification Service Interface

Defines the contract for operator alerts raised by the fulfillment and
reconciliation flows.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class NotificationService(ABC):
    """
    Abstract notification service for operator alerts

    Implementations can send notifications via:
    - Logging
    - Webhook (HTTP POST)
    """

    @abstractmethod
    async def send_operator_alert(self, alert_type: str, message: str, context: Dict[str, Any]) -> bool:
        """
        Send alert to operators

        Args:
            alert_type: Machine-readable kind (e.g. 'inventory_shortage')
            message: Human readable summary
            context: Identifiers of the affected entities

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
