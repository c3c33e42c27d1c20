import hashlib
import re
import secrets

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(duration: str) -> int:
    """Parse a duration such as "15m", "30d" or "1h" into seconds."""
    match = _DURATION_RE.match(duration.strip())
    if not match:
        raise ValueError(f"Invalid duration format: {duration}")
    value, unit = match.groups()
    return int(value) * _UNIT_SECONDS[unit]


def hash_token(plain: str, algo: str = "sha256") -> str:
    hash_func = getattr(hashlib, algo)
    return hash_func(plain.encode()).hexdigest()


def generate_verification_code() -> str:
    return str(secrets.randbelow(900000) + 100000)
