"""
Celery configuration for the GameSync platform.

Sets up Celery for the slot sweeps and the notification outbox worker,
with Redis as the broker.
"""

import os
from celery import Celery

# Set default Django settings module
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gamesync_platform.settings")

app = Celery("gamesync_platform")

# Load config from Django settings with CELERY_ prefix
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all registered Django apps
app.autodiscover_tasks()
