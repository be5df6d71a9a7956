from celery import Celery
from celery.schedules import crontab
from seedsync.core.config import settings

celery_app = Celery("worker", broker=settings.REDIS_URL, backend=settings.REDIS_URL)

celery_app.conf.update(task_track_started=True)

# Configure Celery Beat schedule
celery_app.conf.beat_schedule = {
    'refresh-all-playlists-daily': {
        'task': 'seedsync.tasks.playlist_sync.refresh_all_playlists_task',
        'schedule': crontab(hour=settings.DAILY_SYNC_HOUR, minute=settings.DAILY_SYNC_MINUTE),
    },
    'purge-expired-state-hourly': {
        'task': 'seedsync.tasks.playlist_sync.purge_expired_state_task',
        'schedule': 3600.0,
    },
}
celery_app.conf.timezone = settings.TIMEZONE

# Import tasks to register them
from seedsync.tasks import playlist_sync  # noqa
