"""Gunicorn configuration for the block runtime service.

Usage:
    gunicorn main:app -c deploy/gunicorn.conf.py

Page resolution is I/O bound (content source, media lookup, Redis), so a
handful of async workers carry the load.  With the in-memory block cache
every worker keeps its own cache; set CACHE_STORE_TYPE=redis to share
entries and tag invalidation across workers.
"""

import multiprocessing
import os

# ─── Server socket ──────────────────────────────────────────────

bind = os.getenv("BIND", "0.0.0.0:5000")
backlog = 1024

# ─── Worker processes ───────────────────────────────────────────

workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count(), 4)))
worker_class = "uvicorn.workers.UvicornWorker"

# ─── Timeouts ───────────────────────────────────────────────────
#
# Must exceed BLOCK_STAGE_TIMEOUT times the number of stages a block runs.

timeout = 60
graceful_timeout = 20
keepalive = 5

# ─── Worker recycling ──────────────────────────────────────────

max_requests = 5000
max_requests_jitter = 500

# ─── Logging ────────────────────────────────────────────────────

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

proc_name = "block-runtime"


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info(
        "Starting block runtime — workers=%d, timeout=%ds, cache_store=%s, bind=%s",
        workers,
        timeout,
        os.getenv("CACHE_STORE_TYPE", "memory"),
        bind,
    )


def worker_exit(server, worker):
    server.log.info("Worker exit (pid: %s)", worker.pid)
