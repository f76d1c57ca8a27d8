"""
Notification Service for the loyalty portal.

In-portal notifications for a client: points activity, trip updates, and
referral progress. All reads and writes are scoped to one client.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..extensions import db
from ..models import Notification
from ..utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Usage:
        service = NotificationService(client.id)

        service.list()
        service.mark_read(notification_id)
    """

    def __init__(self, client_id: str):
        self.client_id = client_id

    def _query(self):
        return Notification.query.filter_by(client_id=self.client_id)

    def list(self, limit: Optional[int] = None) -> List[Notification]:
        query = self._query().order_by(Notification.created_at.desc(), Notification.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def unread_count(self) -> int:
        return self._query().filter_by(read=False).count()

    def create(
        self,
        title: str,
        message: str = None,
        notification_type: str = 'info',
        link: str = None
    ) -> Notification:
        notification = Notification(
            client_id=self.client_id,
            title=title,
            message=message,
            notification_type=notification_type,
            link=link,
        )
        db.session.add(notification)
        db.session.commit()
        return notification

    def mark_read(self, notification_id: int) -> Notification:
        notification = self._query().filter_by(id=notification_id).first()
        if not notification:
            raise NotFoundError('Notification', notification_id)

        if not notification.read:
            notification.read = True
            notification.read_at = datetime.utcnow()
            db.session.commit()
        return notification

    def mark_all_read(self) -> int:
        """Returns the number of notifications marked."""
        now = datetime.utcnow()
        count = self._query().filter_by(read=False).update(
            {'read': True, 'read_at': now}, synchronize_session=False
        )
        db.session.commit()
        logger.info('Marked %d notifications read for client %s', count, self.client_id)
        return count

    def summary(self, limit: Optional[int] = None) -> Dict[str, Any]:
        return {
            'notifications': [n.to_dict() for n in self.list(limit)],
            'unread_count': self.unread_count(),
        }
