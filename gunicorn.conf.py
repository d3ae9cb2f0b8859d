"""Gunicorn configuration for production."""

# Entry point: gunicorn "zakat_tracker:create_app()"
wsgi_app = 'zakat_tracker:create_app()'

# Server socket
bind = '0.0.0.0:8080'

# Worker processes. Keep one worker when DAILY_JOB_BACKGROUND=1 so only
# one background job thread runs.
workers = 2
worker_class = 'sync'
timeout = 60
keepalive = 2

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'

# Process naming
proc_name = 'zakat-tracker'
