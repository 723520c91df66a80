from __future__ import annotations

import io
import os
import tempfile
import unittest

from celery import current_app as celery_current_app
from werkzeug.datastructures import FileStorage

from bazaar.celery_app import _extract_trace_id, _task_subject, create_celery_app
from bazaar.utils.uploads import save_uploads, scoped_local_files

from tests.support import BazaarTestCase


class CeleryAppTestCase(BazaarTestCase):
    def test_factory_registers_task_modules_and_context_task(self):
        previous = celery_current_app._get_current_object()
        try:
            celery = create_celery_app(self.app)
        finally:
            previous.set_current()
        self.assertIn("bazaar.tasks.asset_tasks", celery.conf.imports)
        self.assertEqual(celery.conf.task_serializer, "json")
        self.assertEqual(celery.Task.__name__, "FlaskContextTask")

    def test_failure_lines_carry_the_task_subject(self):
        self.assertEqual(
            _task_subject("bazaar.tasks.notification_tasks.deliver_notification", [42, "rid-1"], {}),
            {"notification_id": 42},
        )
        subject = _task_subject(
            "bazaar.tasks.asset_tasks.destroy_orphaned_assets",
            [],
            {"object_ids": ["bazaar/posts/7/a", "bazaar/posts/7/b"], "trace_id": "rid-2"},
        )
        self.assertEqual(subject["object_count"], 2)
        self.assertEqual(subject["object_ids"][0], "bazaar/posts/7/a")
        self.assertEqual(_task_subject("other.task", [1], {}), {})

    def test_trace_id_read_from_kwargs_or_second_argument(self):
        self.assertEqual(_extract_trace_id([], {"trace_id": " rid-9 "}), "rid-9")
        self.assertEqual(_extract_trace_id([42, "rid-3"], {}), "rid-3")
        self.assertEqual(_extract_trace_id([42], None), "")


class UploadsTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp(prefix="bazaar-uploads-")

    def tearDown(self):
        for name in os.listdir(self.tmp):
            os.remove(os.path.join(self.tmp, name))
        os.rmdir(self.tmp)

    def test_save_uploads_keeps_order_and_sanitises_names(self):
        files = [
            FileStorage(stream=io.BytesIO(b"a"), filename="../../etc/passwd"),
            FileStorage(stream=io.BytesIO(b"b"), filename="front view.jpg"),
        ]
        paths = save_uploads(files, self.tmp)
        self.assertEqual(len(paths), 2)
        self.assertTrue(all(os.path.dirname(p) == self.tmp for p in paths))
        self.assertTrue(paths[1].endswith("front_view.jpg"))

    def test_scoped_files_removed_when_body_raises(self):
        path = os.path.join(self.tmp, "x.jpg")
        with open(path, "wb") as fh:
            fh.write(b"x")
        with self.assertRaises(RuntimeError):
            with scoped_local_files([path]):
                raise RuntimeError("boom")
        self.assertFalse(os.path.exists(path))


if __name__ == "__main__":
    unittest.main()
