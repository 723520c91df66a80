from __future__ import annotations

import time

from celery import shared_task

from bazaar.integrations.assets import AssetDestroyError, get_asset_store
from bazaar.tasks._common import _retry_countdown, _task_log


@shared_task(bind=True, name="bazaar.tasks.asset_tasks.destroy_orphaned_assets", max_retries=5)
def destroy_orphaned_assets(self, object_ids: list, trace_id: str = ""):
    """Destroy remote objects left behind by a failed batch; retry the ones that still fail."""
    started = time.perf_counter()
    store = get_asset_store()
    remaining = []
    destroyed = 0
    for object_id in [str(x) for x in (object_ids or []) if x]:
        try:
            store.destroy(object_id)
            destroyed += 1
        except AssetDestroyError:
            remaining.append(object_id)

    if remaining:
        exc = AssetDestroyError(f"{len(remaining)} objects still present")
        if int(self.request.retries or 0) < int(self.max_retries or 0):
            countdown = _retry_countdown(int(self.request.retries or 0))
            _task_log(
                "destroy_orphaned_assets",
                status="retrying",
                started_at=started,
                trace_id=trace_id,
                remaining=remaining,
                countdown=countdown,
            )
            raise self.retry(args=[remaining], kwargs={"trace_id": trace_id}, exc=exc, countdown=countdown)
        _task_log("destroy_orphaned_assets", status="failed", started_at=started, trace_id=trace_id, remaining=remaining)
        raise exc

    _task_log("destroy_orphaned_assets", status="done", started_at=started, trace_id=trace_id, destroyed=destroyed)
    return {"ok": True, "destroyed": destroyed}
