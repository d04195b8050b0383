"""
Production Server Configuration

Run FastAPI with Uvicorn workers under Gunicorn. Each live sales stream holds
a connection and a store listener open, so workers are sized for long-lived
connections rather than CPU count.
"""

import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", 2))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 10000
max_requests_jitter = 1000
# Event streams stay open far longer than regular requests
timeout = int(os.getenv("WORKER_TIMEOUT", 0))
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "laundry-dashboard-api"

# Server mechanics
daemon = False
pidfile = None

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
