# celery_worker.py
from app import create_app
from celery_config import create_celery_app

# Create Celery instance with shared configuration
celery = create_celery_app(__name__)

# Create the Flask app instance. This is still needed to provide context for tasks when they run.
flask_app = create_app()


# Set the custom Task class to ensure tasks run within the Flask app context.
class ContextTask(celery.Task):
    def __call__(self, *args, **kwargs):
        with flask_app.app_context():
            return self.run(*args, **kwargs)


celery.Task = ContextTask

# Import tasks to ensure they're registered with Celery
with flask_app.app_context():
    import tasks.contact_import_tasks  # noqa: F401
