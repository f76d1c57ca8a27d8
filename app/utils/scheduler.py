"""
Background scheduler for automated tasks.

Handles:
- Points expiry (daily at 2 AM UTC)
- Points expiry warnings as in-portal notifications (daily at 9 AM UTC)
"""
import atexit
import os
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None
_flask_app = None  # Flask app for job context


def scheduler_enabled(app) -> bool:
    if app.config.get('TESTING'):
        return False
    return app.config.get('ENV_NAME') == 'production' or os.getenv('ENABLE_SCHEDULER') == 'true'


def init_scheduler(app):
    """
    Initialize the background scheduler.

    Only runs in production or when ENABLE_SCHEDULER=true, never under
    testing. Only the first gunicorn worker starts it.
    """
    global _scheduler, _flask_app

    _flask_app = app

    if not scheduler_enabled(app):
        logger.info('[Scheduler] Disabled (set FLASK_ENV=production or ENABLE_SCHEDULER=true)')
        return None

    # One scheduler per host, not per worker
    if os.getenv('SCHEDULER_RUNNING') == 'true':
        logger.info('[Scheduler] Already running in another process')
        return None

    _scheduler = BackgroundScheduler(
        timezone='UTC',
        job_defaults={
            'coalesce': True,  # Combine missed runs
            'max_instances': 1,
            'misfire_grace_time': 3600
        }
    )

    _scheduler.add_job(
        run_points_expiry,
        trigger=CronTrigger(hour=2, minute=0),
        id='points_expiry',
        name='Expire inactive points balances',
        replace_existing=True
    )

    _scheduler.add_job(
        run_expiry_warnings,
        trigger=CronTrigger(hour=9, minute=0),
        id='points_expiry_warnings',
        name='Warn clients about expiring points',
        replace_existing=True
    )

    _scheduler.start()
    os.environ['SCHEDULER_RUNNING'] = 'true'
    logger.info('[Scheduler] Started: points expiry 02:00 UTC, expiry warnings 09:00 UTC')

    atexit.register(shutdown_scheduler)
    return _scheduler


def shutdown_scheduler():
    """Gracefully shutdown the scheduler."""
    global _scheduler

    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info('[Scheduler] Shutdown complete')


def run_points_expiry():
    """
    Zero out balances past their expiry date.

    Runs daily.
    """
    if not _flask_app:
        logger.error('[Scheduler] Flask app not initialized')
        return

    logger.info('[Scheduler] Processing points expiry...')

    with _flask_app.app_context():
        from ..services.points_service import PointsService

        try:
            result = PointsService().expire_points()
            logger.info(
                f"[Scheduler] Points expiry complete: "
                f"{result['clients_expired']} clients, {result['points_expired']} points"
            )
        except Exception as e:
            logger.error(f'[Scheduler] Points expiry failed: {e}')


def run_expiry_warnings():
    if not _flask_app:
        logger.error('[Scheduler] Flask app not initialized')
        return

    with _flask_app.app_context():
        from ..services.points_service import PointsService

        try:
            result = PointsService().send_expiry_warnings()
            logger.info(f"[Scheduler] Expiry warnings sent to {result['notified']} clients")
        except Exception as e:
            logger.error(f'[Scheduler] Expiry warnings failed: {e}')
