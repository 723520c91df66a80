from __future__ import annotations

import logging
import os
import uuid
from contextlib import contextmanager

from werkzeug.utils import secure_filename


logger = logging.getLogger(__name__)


def upload_tmp_dir(app_config=None) -> str:
    configured = ""
    if app_config is not None:
        configured = str(app_config.get("UPLOAD_TMP_DIR") or "")
    path = configured or os.getenv("UPLOAD_TMP_DIR") or os.path.join(os.getcwd(), "instance", "uploads")
    os.makedirs(path, exist_ok=True)
    return path


def save_uploads(files, target_dir: str) -> list[str]:
    """Write each FileStorage under target_dir, keeping the request order."""
    saved = []
    try:
        for storage in files:
            original = secure_filename(getattr(storage, "filename", "") or "") or "upload"
            path = os.path.join(target_dir, f"{uuid.uuid4().hex[:12]}-{original}")
            storage.save(path)
            saved.append(path)
    except Exception:
        remove_local_files(saved)
        raise
    return saved


def remove_local_files(paths) -> None:
    for path in paths or []:
        try:
            os.remove(path)
        except FileNotFoundError:
            continue
        except OSError:
            logger.warning("local_file_remove_failed path=%s", path)


@contextmanager
def scoped_local_files(paths):
    """Yield the paths and remove them on every exit path."""
    paths = list(paths or [])
    try:
        yield paths
    finally:
        remove_local_files(paths)
