import os

bind = os.getenv("GUNICORN_BIND", "unix:/var/www/pestscout/pestscout-backend/gunicorn.sock")
workers = int(os.getenv("GUNICORN_WORKERS", 4))
worker_class = "sync"
worker_tmp_dir = "/dev/shm"
max_requests = 1000
max_requests_jitter = 100
# Bulk observation uploads from devices that were offline for a day can be large
timeout = 120
keepalive = 5

# Logging
accesslog = "/var/log/pestscout-backend/access.log"
errorlog = "/var/log/pestscout-backend/error.log"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%({x-device-id}i)s" %(D)s'

# Process naming
proc_name = "pestscout-backend"

# Server mechanics
daemon = False
pidfile = "/var/run/pestscout-backend/gunicorn.pid"
user = "deploy"
group = "deploy"
umask = 0o007


def when_ready(server):
    """Called just after the server is started."""
    server.log.info(
        f"Pest scouting API ready ({os.getenv('SCOUTING_RUNTIME_MODE', 'cloud')} mode)"
    )


def worker_abort(worker):
    """Called when a worker receives the SIGABRT signal."""
    worker.log.info("Worker received SIGABRT signal")
