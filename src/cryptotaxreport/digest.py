# digest.py
from __future__ import annotations

import hashlib


def sha256_text(text: str, encoding: str = "ascii") -> str:
    """
    SHA-256 of the exported report as it will be written to disk.

    The report is plain ASCII (fields are sanitized), so the digest of the
    returned string and of the saved file match byte for byte.
    """
    h = hashlib.sha256()
    h.update(text.encode(encoding))
    return h.hexdigest()
