from __future__ import annotations

import logging
import re


EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Common API key/token patterns (loose on purpose)
TOKEN_LIKE_RE = re.compile(
    r"(?i)"
    r"("
    r"(?:bearer\s+[A-Za-z0-9._~+\-/]+=*)"   # Authorization: Bearer ...
    r"|(?:sk_(?:live|test)_[A-Za-z0-9]{8,})" # Stripe secret keys
    r"|(?:whsec_[A-Za-z0-9]{8,})"            # Stripe webhook secrets
    r"|(?:token\s*[=:]\s*\w{12,})"           # token=...
    r"|(?:password\s*[=:]\s*\S+)"            # password=...
    r")"
)

# Authorization header redaction (remove the value part entirely)
AUTH_HEADER_RE = re.compile(r"(?im)^(authorization:\s*)(.+)$")


class RedactionFilter(logging.Filter):
    """Logging filter that masks sensitive values.

    - Emails
    - Authorization header values
    - Token-like secrets (bearer, Stripe keys, token=, password=)
    """

    def __init__(self, replacement: str = "***") -> None:
        super().__init__()
        self.replacement = replacement

    def redact(self, msg: str) -> str:
        msg = AUTH_HEADER_RE.sub(lambda m: f"{m.group(1)}{self.replacement}", msg)
        msg = EMAIL_RE.sub(self.replacement, msg)
        return TOKEN_LIKE_RE.sub(self.replacement, msg)

    def filter(self, record: logging.LogRecord) -> bool:  # always keep record
        try:
            original = record.getMessage()
        except Exception:
            return True
        redacted = self.redact(original)
        if redacted != original:
            record.msg = redacted
            record.args = ()
        return True


def install_redaction_filter(logger: logging.Logger | None = None, *, replacement: str = "***") -> RedactionFilter:
    """Attach one redaction filter to the logger and every handler it already has."""
    logger = logger or logging.getLogger()
    filt = RedactionFilter(replacement=replacement)
    logger.addFilter(filt)
    for h in list(logger.handlers):
        h.addFilter(filt)
    return filt


__all__ = ["RedactionFilter", "install_redaction_filter"]
