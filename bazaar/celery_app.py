from __future__ import annotations

import json
import os
from datetime import datetime

from celery import Celery
from celery.signals import task_failure, task_retry


_SIGNALS_BOUND = False


def _broker_url() -> str:
    return (
        (os.getenv("CELERY_BROKER_URL") or "").strip()
        or (os.getenv("REDIS_URL") or "").strip()
        or "redis://localhost:6379/0"
    )


def _result_backend(broker_url: str) -> str:
    return (
        (os.getenv("CELERY_RESULT_BACKEND") or "").strip()
        or (os.getenv("REDIS_URL") or "").strip()
        or broker_url
    )


def _extract_trace_id(args, kwargs) -> str:
    if isinstance(kwargs, dict):
        trace_id = str(kwargs.get("trace_id") or "").strip()
        if trace_id:
            return trace_id
    # both bazaar tasks take trace_id as their second argument
    args = list(args or [])
    if len(args) > 1 and isinstance(args[1], str):
        return args[1].strip()
    return ""


def _task_subject(task_name: str, args, kwargs) -> dict:
    """Listing-side ids a bazaar task was working on, for failure/retry lines."""
    args = list(args or [])
    kwargs = kwargs if isinstance(kwargs, dict) else {}
    short_name = (task_name or "").rsplit(".", 1)[-1]
    if short_name == "deliver_notification":
        raw = kwargs.get("notification_id", args[0] if args else None)
        return {"notification_id": raw}
    if short_name == "destroy_orphaned_assets":
        raw = kwargs.get("object_ids", args[0] if args else None) or []
        object_ids = [str(x) for x in raw]
        return {"object_count": len(object_ids), "object_ids": object_ids[:10]}
    return {}


def _bind_task_observers(flask_app) -> None:
    global _SIGNALS_BOUND
    if _SIGNALS_BOUND:
        return

    @task_failure.connect(weak=False)
    def _on_task_failure(sender=None, task_id=None, exception=None, args=None, kwargs=None, einfo=None, **extra):
        task_name = getattr(sender, "name", "") if sender is not None else ""
        payload = {
            "event": "celery_task_failure",
            "task_name": task_name,
            "task_id": str(task_id or ""),
            "trace_id": _extract_trace_id(args, kwargs),
            "exception": str(exception or ""),
            "timestamp": datetime.utcnow().isoformat(),
        }
        payload.update(_task_subject(task_name, args, kwargs))
        if einfo is not None:
            payload["einfo"] = str(einfo)
        flask_app.logger.error(json.dumps(payload))

    @task_retry.connect(weak=False)
    def _on_task_retry(request=None, reason=None, einfo=None, **extra):
        task_name = str(getattr(request, "task", "") or "")
        payload = {
            "event": "celery_task_retry",
            "task_name": task_name,
            "task_id": str(getattr(request, "id", "") or ""),
            "trace_id": _extract_trace_id(getattr(request, "args", None), getattr(request, "kwargs", None)),
            "reason": str(reason or ""),
            "retry_count": int(getattr(request, "retries", 0) or 0),
            "timestamp": datetime.utcnow().isoformat(),
        }
        payload.update(_task_subject(task_name, getattr(request, "args", None), getattr(request, "kwargs", None)))
        flask_app.logger.warning(json.dumps(payload))

    _SIGNALS_BOUND = True


def create_celery_app(flask_app) -> Celery:
    broker = _broker_url()
    backend = _result_backend(broker)
    celery = Celery(flask_app.import_name, broker=broker, backend=backend)
    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        task_track_started=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        timezone="UTC",
        enable_utc=True,
    )

    class FlaskContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with flask_app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskContextTask
    celery.conf.imports = ("bazaar.tasks.notification_tasks", "bazaar.tasks.asset_tasks")
    _bind_task_observers(flask_app)
    return celery
