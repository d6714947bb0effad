import hashlib


def hash_value(value: str) -> str:
    """Return the SHA-256 hex digest used as a stable entry identity."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
