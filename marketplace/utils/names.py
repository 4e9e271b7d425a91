# marketplace/utils/names.py
import re
import secrets
import string
from typing import Tuple

_ALPHABET = string.ascii_letters + string.digits


def sanitize_string(value: str) -> str:
    """Strip angle brackets and surrounding whitespace from free text."""
    return re.sub(r"[<>]", "", value).strip()


def split_full_name(full_name: str) -> Tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return sanitize_string(parts[0]), ""
    return sanitize_string(parts[0]), sanitize_string(" ".join(parts[1:]))


def generate_random_string(length: int = 32) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
