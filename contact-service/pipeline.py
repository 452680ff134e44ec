"""
pipeline.py — Submission Processing Pipeline
=============================================
Executes the processing pipeline for every POSTed submission.
Each step is a rejection point. Transport is the last step.

Steps:
1. Rate gate (per client session)
2. Parse JSON body
3. Validate purpose
4. Extract and sanitize fields
5. Validate email format
6. Check required fields
7. Render message
8. Hand off to notifier
9. Return result

The method check happens before this, in the web layer.
"""

import html
import json
import logging
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

import templates
from ratelimit import RateLimiter
from transport import NotificationMessage, Notifier

log = logging.getLogger(__name__)

MSG_METHOD_NOT_ALLOWED = "Only POST requests are allowed"
MSG_RATE_LIMITED       = "Too many requests. Please wait before trying again."
MSG_INVALID_JSON       = "Invalid JSON"
MSG_INVALID_PURPOSE    = "Invalid purpose value. Use 0 for contact and 1 for appointment"
MSG_INVALID_EMAIL      = "Invalid email format"
MSG_MISSING_FIELDS     = "All fields are required"
MSG_SENT               = "Email send successfully!"


@dataclass
class Recipient:
    """Where notifications go and who they claim to come from."""
    address:     str
    sender_name: str = "Web Site"


@dataclass
class SubmitRequest:
    session_id: str
    body:       bytes


@dataclass
class Submission:
    purpose:    int
    first_name: str
    last_name:  str
    email:      str
    phone:      str
    subject:    str
    message:    str


@dataclass
class SubmitResult:
    http_status: int
    status:      str      # "success" | "error"
    message:     str

    def to_json(self) -> dict:
        return {"status": self.status, "message": self.message}


def _reject(http_status: int, message: str) -> SubmitResult:
    log.warning(f"Request rejected [{http_status}]: {message}")
    return SubmitResult(http_status=http_status, status="error", message=message)


def method_not_allowed() -> SubmitResult:
    return _reject(405, MSG_METHOD_NOT_ALLOWED)


# ── Field helpers ─────────────────────────────────────────────────────────────

def _text(value) -> str:
    """Numbers keep their digits, true is "1"; false, null, lists and objects are blank."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def sanitize(value) -> str:
    """Trim, then escape HTML special characters."""
    return html.escape(_text(value).strip())


def flatten_subject(value) -> str:
    """Lists are joined with ', '. The subject is not escaped."""
    if value is None:
        return ""
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def is_valid_email(address: str) -> bool:
    try:
        validate_email(address, check_deliverability=False, allow_smtputf8=False)
    except EmailNotValidError:
        return False
    return True


def parse_submission(data: dict) -> Submission:
    """Step 4: pull fields out of a decoded body whose purpose is already checked."""
    return Submission(
        purpose=data['purpose'],
        first_name=sanitize(data.get('firstName')),
        last_name=sanitize(data.get('lastName')),
        email=sanitize(data.get('email')),
        phone=sanitize(data.get('phone')),
        subject=flatten_subject(data.get('subject')),
        message=sanitize(data.get('message')),
    )


def build_message(sub: Submission, recipient: Recipient) -> NotificationMessage:
    subject, body_text, body_html = templates.render(
        sub.purpose, sub.subject, sub.first_name, sub.last_name,
        sub.message, sub.phone, sub.email,
    )
    return NotificationMessage(
        to_address=recipient.address,
        from_address=recipient.address,
        from_name=recipient.sender_name,
        reply_to_address=sub.email,
        reply_to_name=f"{sub.first_name} {sub.last_name}",
        subject=subject,
        body_text=body_text,
        body_html=body_html,
    )


# ── Pipeline ──────────────────────────────────────────────────────────────────

def process(req: SubmitRequest, limiter: RateLimiter, notifier: Notifier,
            recipient: Recipient) -> SubmitResult:

    # ── Step 1: Rate gate ─────────────────────────────────────────────────────
    decision = limiter.hit(req.session_id)
    if not decision.allowed:
        log.info(f"Session {req.session_id[:8]} retried after {decision.elapsed:.1f}s")
        return _reject(429, MSG_RATE_LIMITED)

    # ── Step 2: Parse JSON ────────────────────────────────────────────────────
    try:
        data = json.loads(req.body)
    except (ValueError, RecursionError):
        return _reject(400, MSG_INVALID_JSON)

    # ── Step 3: Validate purpose ──────────────────────────────────────────────
    if not isinstance(data, dict) or not templates.is_valid_purpose(data.get('purpose')):
        return _reject(400, MSG_INVALID_PURPOSE)

    # ── Step 4: Extract and sanitize ──────────────────────────────────────────
    sub = parse_submission(data)

    # ── Step 5: Email format ──────────────────────────────────────────────────
    if not is_valid_email(sub.email):
        return _reject(400, MSG_INVALID_EMAIL)

    # ── Step 6: Required fields ───────────────────────────────────────────────
    required = (sub.first_name, sub.last_name, sub.email, sub.subject.strip(), sub.message)
    if not all(required):
        return _reject(400, MSG_MISSING_FIELDS)

    # ── Step 7: Render ────────────────────────────────────────────────────────
    msg = build_message(sub, recipient)
    log.info(f"Submission: purpose={templates.label_for(sub.purpose)} from={sub.email}")

    # ── Step 8: Hand off to notifier ──────────────────────────────────────────
    result = notifier.send(msg)

    if not result.success:
        log.error(f"Notifier failed: {result.error}")
        return SubmitResult(
            http_status=500,
            status="error",
            message=f"Error sending email: {result.error}",
        )

    return SubmitResult(http_status=200, status="success", message=MSG_SENT)
