from __future__ import annotations

import os
import shutil
import tempfile
import time
import unittest

from bazaar import create_app
from bazaar.extensions import db
from bazaar.models import AccountStatus, ModerationState, Post, PostDetails, User, DETAIL_SLOTS
from bazaar.utils.jwt_utils import create_token


_ENV_KEYS = (
    "SQLALCHEMY_DATABASE_URI",
    "DATABASE_URL",
    "ASSET_STORE_PROVIDER",
    "MAIL_PROVIDER",
    "BACKGROUND_TASKS_ENABLED",
    "UPLOAD_TMP_DIR",
)


class BazaarTestCase(unittest.TestCase):
    """In-memory app with the mock asset store and background tasks switched off."""

    @classmethod
    def setUpClass(cls):
        cls._prev_env = {key: os.getenv(key) for key in _ENV_KEYS}
        cls.upload_dir = tempfile.mkdtemp(prefix="bazaar-test-uploads-")
        db_uri = "sqlite:///:memory:"
        os.environ["SQLALCHEMY_DATABASE_URI"] = db_uri
        os.environ["DATABASE_URL"] = db_uri
        os.environ["ASSET_STORE_PROVIDER"] = "mock"
        os.environ["MAIL_PROVIDER"] = "mock"
        os.environ["BACKGROUND_TASKS_ENABLED"] = "0"
        os.environ["UPLOAD_TMP_DIR"] = cls.upload_dir
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        cls.client = cls.app.test_client()

    @classmethod
    def tearDownClass(cls):
        for key, value in cls._prev_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        shutil.rmtree(cls.upload_dir, ignore_errors=True)

    def setUp(self):
        self.app.extensions.pop("bazaar_asset_store", None)
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.create_all()

    # seed helpers, call inside an app context

    def seed_user(self, role: str = "user", *, status: str = AccountStatus.VALIDATE, name: str | None = None) -> int:
        suffix = str(time.time_ns())
        row = User(
            name=name or f"{role}-{suffix[-4:]}",
            email=f"{role}-{suffix}@bazaar.test",
            role=role,
            account_status=status,
        )
        row.set_password("Passw0rd!")
        db.session.add(row)
        db.session.commit()
        return int(row.id)

    def seed_post(
        self,
        owner_id: int,
        *,
        state: str = ModerationState.APPROVED,
        title: str = "Used phone",
        price: float = 1000.0,
        discount: bool = False,
        discount_price: float | None = None,
        description: str = "",
        keyword: str = "",
        is_active: bool = True,
        with_details: bool = True,
        **extra,
    ) -> int:
        details_keys = ("brand_id", "category_id", "model_id")
        post = Post(
            owner_id=int(owner_id),
            title=title,
            price=price,
            discount=discount,
            discount_price=discount_price,
            moderation_state=state,
            is_active=is_active,
            main_image_url="https://assets.mock.local/main.jpg",
            main_image_object_id=f"seed/{owner_id}/{time.time_ns()}/main",
            **{k: v for k, v in extra.items() if k not in details_keys},
        )
        db.session.add(post)
        db.session.commit()
        if with_details:
            details = PostDetails(
                post_id=int(post.id),
                description=description,
                keyword=keyword,
                **{k: v for k, v in extra.items() if k in details_keys},
            )
            for slot in DETAIL_SLOTS:
                details.set_image_slot(slot, f"https://assets.mock.local/{slot}.jpg", f"seed/{post.id}/{slot}")
            db.session.add(details)
            db.session.commit()
        return int(post.id)

    def auth_headers(self, user_id: int) -> dict:
        with self.app.app_context():
            token = create_token(int(user_id))
        return {"Authorization": f"Bearer {token}"}

    def write_temp_images(self, count: int, *, names: list[str] | None = None) -> list[str]:
        paths = []
        for index in range(count):
            name = names[index] if names else f"image-{index + 1}.jpg"
            handle, path = tempfile.mkstemp(prefix="img-", suffix=f"-{name}", dir=self.upload_dir)
            with os.fdopen(handle, "wb") as fh:
                fh.write(b"\xff\xd8\xff" + bytes([index]) * 16)
            paths.append(path)
        return paths
