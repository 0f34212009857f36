# use in gunicorn as: env/bin/gunicorn imgbed.api:app -c gunicorn.conf.py
# with more than one worker, set imgbed_cache_backend=elastic so the workers share one image index

# Workers
workers = 5
worker_class = 'uvicorn.workers.UvicornWorker'

# Socket
bind = 'localhost:5001'

# Logging
# loglevel = 'debug'
# accesslog = '/tmp/imgbed_access_log'
# errorlog =  '/tmp/imgbed_error_log'
