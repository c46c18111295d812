import os
import signal

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:4000")
# Subscribers and the event bus live in-process, so every client must reach
# the same worker.
workers = 1
threads = int(os.environ.get("GUNICORN_THREADS", "100"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
worker_class = "gthread"
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("GUNICORN_LOGLEVEL", "info")
wsgi_app = "weekplanner.wsgi:app"


def post_worker_init(worker):
    """Drain subscription streams as soon as SIGTERM arrives.

    Open websocket requests never finish by themselves, so waiting for
    gunicorn's graceful timeout before draining would race the SIGKILL.
    The worker's handlers are already installed at this point, so SIGTERM
    is re-registered with the wrapped handler.
    """
    from weekplanner.server import shutdown

    app = worker.wsgi
    handle_exit = worker.handle_exit

    def drain_then_exit(sig, frame):
        worker.log.info("Draining subscriptions before worker exit")
        shutdown(app)
        handle_exit(sig, frame)

    worker.handle_exit = drain_then_exit
    signal.signal(signal.SIGTERM, drain_then_exit)


def worker_exit(server, worker):
    from weekplanner.server import shutdown

    app = getattr(worker, "wsgi", None)
    if app is not None:
        shutdown(app)
