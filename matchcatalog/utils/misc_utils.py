# matchcatalog/utils/misc_utils.py
import hashlib

DIGEST_LENGTH = 16


def short_digest(value: str) -> str:
    """First 16 hex characters of the MD5 of `value` (stable across runs)."""
    return hashlib.md5(value.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]
