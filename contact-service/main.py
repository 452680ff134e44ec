"""
Contact Service
===============
Language  : Python
Framework : Flask + Gunicorn

Architecture: one POST endpoint on every path, layered behind it.
  config.py     — environment / .env settings
  ratelimit.py  — per-session rate gate
  templates.py  — purpose registry and message rendering
  pipeline.py   — parse, validate, render, hand off
  transport.py  — Notifier interface + SMTP delivery (swap freely)

Every response is pretty-printed JSON with permissive CORS headers.
The rate gate lives in process memory: run a single worker
(gunicorn -w 1 --threads 4 main:app).
"""

import logging
import uuid

from flask import Flask, request, jsonify, session

import config
import pipeline
import transport
from ratelimit import RateLimiter

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [contact-service] %(levelname)s %(message)s'
)
log = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization',
}


def _session_id() -> str:
    """Random id kept in the signed session cookie. No cookie, new session."""
    sid = session.get('sid')
    if not sid:
        sid = uuid.uuid4().hex
        session['sid'] = sid
    return sid


def _respond(result: pipeline.SubmitResult):
    return jsonify(result.to_json()), result.http_status


def create_app(settings: config.Settings | None = None,
               notifier: transport.Notifier | None = None,
               limiter: RateLimiter | None = None) -> Flask:
    if settings is None:
        settings = config.load()
    logging.getLogger().setLevel(settings.log_level)

    app = Flask(__name__, static_folder=None)
    app.secret_key = settings.secret_key
    app.json.compact = False
    app.json.sort_keys = False

    # RateLimiter has __len__, so an empty one is falsy: test for None
    if notifier is None:
        notifier = transport.SmtpNotifier(settings)
    if limiter is None:
        limiter = RateLimiter(
            interval=settings.rate_limit_seconds,
            ttl=settings.session_ttl_seconds,
        )
    recipient = pipeline.Recipient(
        address=settings.notify_address,
        sender_name=settings.sender_name,
    )
    if not recipient.address:
        log.warning("No notification address configured (EMAIL_USER / EMAIL_TO)")

    app.extensions['contact'] = {
        'settings': settings,
        'notifier': notifier,
        'limiter': limiter,
        'recipient': recipient,
    }

    @app.after_request
    def add_cors_headers(resp):
        resp.headers.update(CORS_HEADERS)
        return resp

    @app.errorhandler(405)
    def method_not_allowed(e):
        log.info(f"{request.method} {request.path} refused")
        return _respond(pipeline.method_not_allowed())

    @app.route('/', defaults={'path': ''}, methods=['POST'], provide_automatic_options=False)
    @app.route('/<path:path>', methods=['POST'], provide_automatic_options=False)
    def submit(path):
        req = pipeline.SubmitRequest(session_id=_session_id(), body=request.get_data())
        return _respond(pipeline.process(req, limiter, notifier, recipient))

    return app


app = create_app()


if __name__ == '__main__':
    settings = app.extensions['contact']['settings']
    notifier = app.extensions['contact']['notifier']
    log.info(f"Contact Service (Python) starting on :{settings.port}")
    log.info(f"  Notify    : {settings.notify_address or '(not set)'} as '{settings.sender_name}'")
    log.info(f"  Rate gate : {settings.rate_limit_seconds:g}s per session")
    if isinstance(notifier, transport.SmtpNotifier):
        smtp = notifier.config_summary()
        log.info(f"  Transport : SMTP {smtp['host']}:{smtp['port']} (mode={smtp['mode']}, tls={smtp['tls']})")
    app.run(host='0.0.0.0', port=settings.port)
