import re
from typing import Any

# Display only: nothing here takes part in compile or instantiate.
_SECRET_PATTERNS = (
    re.compile(r"^sk-[a-zA-Z0-9_-]{20,}$"),            # OpenAI style
    re.compile(r"^[a-zA-Z0-9]{32,}$"),                 # long alphanumeric
    re.compile(r"^[a-zA-Z0-9_-]{40,}$"),               # dash/underscore tokens
    re.compile(r"^Bearer\s+[a-zA-Z0-9._-]{20,}$", re.IGNORECASE),
    re.compile(r"^[a-f0-9]{40,64}$"),                  # hex digests
    re.compile(r"api[_-]?key", re.IGNORECASE),
    re.compile(r"^pk_[a-zA-Z0-9]{20,}$"),              # Stripe publishable
    re.compile(r"^sk_[a-zA-Z0-9]{20,}$"),              # Stripe secret
)


def looks_like_secret(value: Any) -> bool:
    if not isinstance(value, str) or len(value) < 20:
        return False
    return any(p.search(value) for p in _SECRET_PATTERNS)


def redact(value: Any) -> Any:
    """
    Mask a probable secret for display: first 8 + "..." + last 4 characters.
    Anything that does not look like a secret is returned unchanged.
    """
    if not looks_like_secret(value):
        return value
    if len(value) > 20:
        return f"{value[:8]}...{value[-4:]}"
    return f"{value[:4]}..."
