import os


def background_tasks_enabled() -> bool:
    """Celery enqueueing is on unless BACKGROUND_TASKS_ENABLED=0 (tests, one-off scripts)."""
    return (os.getenv("BACKGROUND_TASKS_ENABLED") or "1").strip().lower() not in ("0", "false", "no", "off")
