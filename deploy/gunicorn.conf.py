"""
Gunicorn configuration for the EduProgress API

Run with: gunicorn -c deploy/gunicorn.conf.py eduprogress.main:app
"""
import os
import multiprocessing

wsgi_app = "eduprogress.main:app"

# Server socket
bind = os.environ.get("BIND", "0.0.0.0:8000")
backlog = 2048

# Workers: ASGI app served by Uvicorn workers
workers = int(os.environ.get("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 60
keepalive = 5

# Logging to stdout/stderr; the app configures its own format
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = "eduprogress"

daemon = False
pidfile = None

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info(f"EduProgress ready with {workers} workers on {bind}")


def worker_int(worker):
    worker.log.info(f"Worker {worker.pid} interrupted")
