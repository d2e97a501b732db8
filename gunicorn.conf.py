import os

wsgi_app = "src.app:create_app()"
bind = "0.0.0.0:5000"
workers = int(os.getenv("GUNICORN_WORKERS", 4))
worker_class = "sync"
# Must exceed STORE_TIMEOUT_SECONDS + NOTIFICATION_TIMEOUT_SECONDS
timeout = int(os.getenv("GUNICORN_TIMEOUT", 30))
keepalive = 5
max_requests = 1000
max_requests_jitter = 50

# Logging
accesslog = "-"  # stdout
errorlog = "-"  # stderr
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# For development with reload
reload = os.getenv("FLASK_ENV") == "development"


def on_starting(server):
    from src.utils.startup_check import validate_environment

    validate_environment()
