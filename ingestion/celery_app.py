"""Celery 애플리케이션 부트스트랩."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict

from celery import Celery, signals
from celery.schedules import schedule as celery_schedule

from .settings import Settings, get_settings
from .utils.logging import configure_logging

UPDATE_TASK_NAME = "ingestion.tasks.update.update_news"
UPDATE_SCHEDULE_NAME = "news.update"

_CELERY_APP: Celery | None = None


def create_celery_app(settings: Settings | None = None) -> Celery:
    """설정을 기반으로 Celery 인스턴스를 생성한다."""
    config = settings or get_settings()
    configure_logging(config.log_level, json_enabled=config.log_json)

    app = Celery("ingestion", broker=config.redis_url, backend=config.redis_url)
    app.conf.update(
        task_default_queue="ingestion.default",
        task_default_exchange="ingestion",
        task_default_routing_key="ingestion.default",
        task_soft_time_limit=config.celery_task_soft_time_limit,
        beat_schedule=_build_beat_schedule(config),
        timezone="UTC",
        enable_utc=True,
        worker_send_task_events=True,
        task_send_sent_event=True,
    )

    app.autodiscover_tasks(["ingestion.tasks"], related_name="update")
    _install_signal_handlers()
    return app


def get_celery_app() -> Celery:
    """싱글톤 Celery 인스턴스를 반환한다."""
    global _CELERY_APP
    if _CELERY_APP is None:
        _CELERY_APP = create_celery_app()
    return _CELERY_APP


def _build_beat_schedule(settings: Settings) -> Dict[str, Dict[str, Any]]:
    if not settings.update_enabled:
        return {}
    return {
        UPDATE_SCHEDULE_NAME: {
            "task": UPDATE_TASK_NAME,
            "schedule": celery_schedule(timedelta(minutes=settings.update_interval_minutes)),
            "options": {
                "queue": "ingestion.update",
                # 한 주기보다 오래된 틱은 다음 틱으로 대체된다.
                "expires": settings.update_interval_minutes * 60,
            },
        }
    }


def _install_signal_handlers() -> None:
    logger = logging.getLogger("ingestion.worker")

    @signals.worker_shutdown.connect(weak=False, dispatch_uid="ingestion.worker_shutdown")  # type: ignore[attr-defined]
    def _on_worker_shutdown(sender=None, **kwargs):  # noqa: ANN001
        logger.info("worker.shutdown", extra={"sender": str(sender)})
