"""
Gunicorn configuration for the gfscore API.

Env vars:
  PORT           — TCP port to bind (default 8000)
  WORKERS        — worker processes (default 2)
  WORKER_TIMEOUT — seconds before a silent worker is killed (default 300)
  LOG_LEVEL      — gunicorn log level, shared with the app (default info)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

# POST /jobs/recompute-all walks the whole catalog inside one request.
timeout = int(os.environ.get("WORKER_TIMEOUT", "300"))
graceful_timeout = 30
keepalive = 5

loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'
