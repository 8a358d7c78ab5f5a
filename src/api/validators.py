"""Submission validation and URL normalization."""

import ipaddress
import re
from urllib.parse import urlsplit

from exceptions import InvalidSubmissionError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DISPOSABLE_EMAIL_DOMAINS = {
    "10minutemail.com",
    "dispostable.com",
    "getnada.com",
    "guerrillamail.com",
    "maildrop.cc",
    "mailinator.com",
    "sharklasers.com",
    "temp-mail.org",
    "tempmail.com",
    "throwawaymail.com",
    "trashmail.com",
    "yopmail.com",
}

# Substrings that mark a throwaway inbox provider regardless of TLD
DISPOSABLE_EMAIL_MARKERS = ("tempmail", "throwaway", "trashmail", "10minutemail")

BLOCKED_HOST_SUFFIXES = (".local", ".internal", ".localhost")

INVALID_URL_MESSAGE = "Invalid URL format. Please include http:// or https://"


def validate_submission(url: str | None, email: str | None) -> tuple[str, str]:
    """
    Check a submission and return the normalized (url, email) pair.

    Raises:
        InvalidSubmissionError: with the user-facing reason, checked in
            order: required fields, email format, disposable domain,
            URL syntax, blocked host.
    """
    url = (url or "").strip()
    email = (email or "").strip()

    if not url:
        raise InvalidSubmissionError("URL is required")
    if not email:
        raise InvalidSubmissionError("Email is required")

    if not EMAIL_PATTERN.match(email):
        raise InvalidSubmissionError("Invalid email format")
    if is_disposable_email(email):
        raise InvalidSubmissionError("Disposable email addresses are not allowed")

    normalized = normalize_url(url)
    host = urlsplit(normalized).hostname or ""
    if is_blocked_host(host):
        raise InvalidSubmissionError("This URL cannot be analyzed. Please submit a public website")

    return normalized, email.lower()


def is_disposable_email(email: str) -> bool:
    domain = email.rsplit("@", 1)[-1].lower()
    if any(domain == known or domain.endswith(f".{known}") for known in DISPOSABLE_EMAIL_DOMAINS):
        return True
    return any(marker in domain for marker in DISPOSABLE_EMAIL_MARKERS)


def normalize_url(url: str) -> str:
    """
    Canonical form used for storage and the resubmission cooldown.

    Adds https:// to bare hosts, forces https, lower-cases the host,
    strips a leading www. and a trailing slash.

    Raises:
        InvalidSubmissionError: for schemes other than http(s) or a missing host
    """
    candidate = url if "://" in url else f"https://{url}"
    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        raise InvalidSubmissionError(INVALID_URL_MESSAGE)

    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise InvalidSubmissionError(INVALID_URL_MESSAGE)
    if any(char.isspace() for char in candidate):
        raise InvalidSubmissionError(INVALID_URL_MESSAGE)

    host = parts.hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    if ":" in host:
        host = f"[{host}]"
    if port:
        host = f"{host}:{port}"

    path = parts.path
    if path.endswith("/"):
        path = path.rstrip("/")

    normalized = f"https://{host}{path}"
    if parts.query:
        normalized += f"?{parts.query}"
    if parts.fragment:
        normalized += f"#{parts.fragment}"
    return normalized


def is_blocked_host(host: str) -> bool:
    """Loopback addresses and local-only names are never fetched."""
    host = host.lower().strip("[]")
    if not host or host == "localhost" or host.endswith(BLOCKED_HOST_SUFFIXES):
        return True

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return "." not in host
    return address.is_loopback or address.is_unspecified
