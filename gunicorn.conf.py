"""
Gunicorn configuration for the loyalty portal.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Worker configuration
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 60
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'loyalty-portal'

# One app (and one scheduler) loaded before forking
preload_app = True

graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting loyalty portal...")


def on_exit(server):
    print("[Gunicorn] Loyalty portal shutting down...")
