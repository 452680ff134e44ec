"""
config.py — Service Configuration
==================================
Everything configurable comes from the process environment. A `.env` file in
the working directory is loaded first; variables already set in the
environment take precedence over it.

  EMAIL_HOST           — SMTP server hostname (empty: console fallback)
  EMAIL_PORT           — SMTP port (default: 587)
  EMAIL_USER           — SMTP username, also the address notifications go to
  EMAIL_PASS           — SMTP password
  EMAIL_TO             — Notification address override (default: EMAIL_USER)
  EMAIL_SENDER_NAME    — From display name (default: Web Site)
  EMAIL_USE_TLS        — Use STARTTLS (default: true)
  EMAIL_TIMEOUT        — SMTP network timeout in seconds (default: 10)
  RATE_LIMIT_SECONDS   — Minimum interval between requests of a session (default: 60)
  SESSION_TTL_SECONDS  — Idle time after which a session is forgotten (default: 1440)
  SECRET_KEY           — Session cookie signing key (default: random per process)
  PORT                 — Dev server port (default: 8080)
  LOG_LEVEL            — Root log level (default: INFO)
"""

import os
import logging
import secrets
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

log = logging.getLogger(__name__)


@dataclass
class Settings:
    email_host: str = ''
    email_port: int = 587
    email_user: str = ''
    email_password: str = ''
    notify_address: str = ''
    sender_name: str = 'Web Site'
    use_tls: bool = True
    timeout: float = 10.0
    rate_limit_seconds: float = 60.0
    session_ttl_seconds: float = 1440.0
    secret_key: str = ''
    port: int = 8080
    log_level: str = 'INFO'


def _flag(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load(env_file: str | None = None) -> Settings:
    """Read settings from `.env` (or `env_file`) and the environment."""
    load_dotenv(env_file or find_dotenv(usecwd=True))
    env = os.environ

    user = env.get('EMAIL_USER', '')
    secret_key = env.get('SECRET_KEY', '')
    if not secret_key:
        log.warning("SECRET_KEY not set — generating a per-process key, sessions reset on restart")
        secret_key = secrets.token_hex(32)

    log_level = env.get('LOG_LEVEL', 'INFO').strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        log.warning(f"Unknown LOG_LEVEL '{log_level}' — using INFO")
        log_level = 'INFO'

    return Settings(
        email_host=env.get('EMAIL_HOST', ''),
        email_port=int(env.get('EMAIL_PORT', '587')),
        email_user=user,
        email_password=env.get('EMAIL_PASS', ''),
        notify_address=env.get('EMAIL_TO', '') or user,
        sender_name=env.get('EMAIL_SENDER_NAME', 'Web Site'),
        use_tls=_flag(env.get('EMAIL_USE_TLS', 'true')),
        timeout=float(env.get('EMAIL_TIMEOUT', '10')),
        rate_limit_seconds=float(env.get('RATE_LIMIT_SECONDS', '60')),
        session_ttl_seconds=float(env.get('SESSION_TTL_SECONDS', '1440')),
        secret_key=secret_key,
        port=int(env.get('PORT', '8080')),
        log_level=log_level,
    )
