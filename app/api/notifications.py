"""
Notification endpoints for the signed-in client.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth
from ..services.notification_service import NotificationService
from ..utils.cache_invalidation import revalidate_path

notifications_bp = Blueprint('notifications', __name__)


def _refresh_unread_counts():
    for path in ('/', '/notifications'):
        revalidate_path(path, g.user.id)


@notifications_bp.route('', methods=['GET'])
@require_auth
def list_notifications():
    limit = request.args.get('limit', type=int)
    return jsonify(NotificationService(g.client.id).summary(limit))


@notifications_bp.route('/<int:notification_id>/read', methods=['POST'])
@require_auth
def mark_read(notification_id):
    notification = NotificationService(g.client.id).mark_read(notification_id)
    _refresh_unread_counts()
    return jsonify({'success': True, 'notification': notification.to_dict()})


@notifications_bp.route('/read-all', methods=['POST'])
@require_auth
def mark_all_read():
    count = NotificationService(g.client.id).mark_all_read()
    _refresh_unread_counts()
    return jsonify({'success': True, 'marked': count})
