"""
templates.py — Purpose Registry and Message Rendering
======================================================
Defines the submission purposes the form accepts and renders a validated
submission into subject / plain text / HTML.

render() returns (subject, body_text, body_html). The HTML part is the plain
text with line breaks, nothing more. The form fields are HTML-escaped before
they get here; the subject is not.

Adding a purpose: add an entry to PURPOSES. Nothing else needs to change.
"""

import re
from dataclasses import dataclass


@dataclass
class PurposeSpec:
    label:       str
    description: str


# ── Registry ──────────────────────────────────────────────────────────────────

PURPOSES: dict[int, PurposeSpec] = {
    0: PurposeSpec(label="İletişim", description="General contact request"),
    1: PurposeSpec(label="Randevu",  description="Appointment request"),
}

PHONE_PLACEHOLDER = "Belirtilmemiş"

_LINE_BREAK = re.compile(r"(\r\n|\n\r|\n|\r)")


def is_valid_purpose(value) -> bool:
    """Strict match: JSON true/false and 1.0 are not purposes."""
    return type(value) is int and value in PURPOSES


def label_for(purpose: int) -> str:
    return PURPOSES[purpose].label


# ── Rendering ─────────────────────────────────────────────────────────────────

def nl2br(text: str) -> str:
    """Insert <br /> before every line break, keeping the break itself."""
    return _LINE_BREAK.sub(r"<br />\1", text)


def _header_safe(value: str) -> str:
    return " ".join(value.splitlines())


def render_subject(purpose: int, subject: str) -> str:
    return _header_safe(f"{label_for(purpose)}: {subject}")


def render_body(purpose: int, first_name: str, last_name: str,
                message: str, phone: str, email: str) -> str:
    label = label_for(purpose)
    phone_line = f"Telefon: {phone}" if phone else f"Telefon: {PHONE_PLACEHOLDER}"
    return "\n".join([
        f"{first_name} {last_name} isimli kişi {label} için talepte bulundu.",
        f"Mesaj: {message}",
        phone_line,
        f"E-Posta: {email}",
    ])


def render(purpose: int, subject: str, first_name: str, last_name: str,
           message: str, phone: str, email: str) -> tuple[str, str, str]:
    """
    Returns (subject_line, body_text, body_html).
    Raises KeyError if purpose is not in the registry (validate first).
    """
    body = render_body(purpose, first_name, last_name, message, phone, email)
    return render_subject(purpose, subject), body, nl2br(body)
