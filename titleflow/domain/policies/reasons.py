"""ReasonPolicy — free-text justifications must be substantive."""

from titleflow.domain.errors import InvalidReason


def require_reason(reason: str | None, min_length: int, what: str = "Reason") -> str:
    """Return the stripped reason or raise InvalidReason.

    Only length is enforced, never a format.
    """
    cleaned = (reason or "").strip()
    if not cleaned:
        raise InvalidReason(f"{what} is mandatory")
    if len(cleaned) < min_length:
        raise InvalidReason(f"{what} must be at least {min_length} characters")
    return cleaned
