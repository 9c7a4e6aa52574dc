"""
Push notifications for domain events raised outside messaging.

Delivery is best effort: a notification goes out only while the target user
has a live connection. Offline users miss it; there is no durable queue, the
drop is logged.
"""

import logging
from typing import Any

from app.clock import utcnow
from app.presence import PresenceRegistry, presence

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "notification:new"


class NotificationBridge:
    def __init__(self, registry: PresenceRegistry):
        self.presence = registry

    async def notify(self, user_id: str, kind: str, data: Any = None) -> bool:
        """Push ``kind`` to the user's connection. Returns False when dropped."""
        connection = self.presence.lookup(user_id)
        if connection is None:
            logger.info("User %s offline, dropping %s notification", user_id, kind)
            return False

        delivered = await connection.send(NOTIFICATION_EVENT, {
            "type": kind,
            "data": data,
            "createdAt": utcnow().isoformat(),
        })
        if not delivered:
            logger.info("Connection for user %s gone, dropping %s notification", user_id, kind)
        return delivered

    async def invoice_created(self, client_id: str, invoice: dict) -> bool:
        return await self.notify(client_id, "invoice:created", invoice)

    async def invoice_updated(self, client_id: str, invoice: dict) -> bool:
        return await self.notify(client_id, "invoice:updated", invoice)


notifications = NotificationBridge(presence)
