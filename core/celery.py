import os
from celery import Celery

# Set default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')

app = Celery('faculty_allocation')

# Load config from Django settings with CELERY_ prefix (beat schedule included)
app.config_from_object('django.conf:settings', namespace='CELERY')

# Discover tasks in installed apps plus the standalone background_tasks package
app.autodiscover_tasks()
app.autodiscover_tasks(['background_tasks'])
