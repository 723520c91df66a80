"""Worker entrypoint: `celery -A celery_app.celery worker`."""
from bazaar import create_app
from bazaar.celery_app import create_celery_app


flask_app = create_app()
celery = create_celery_app(flask_app)
