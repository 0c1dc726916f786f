"""Referral code generation and format checks"""

import re
import secrets

# No 0/O or 1/I so codes survive being read aloud or retyped
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 8
CODE_PATTERN = re.compile(r"^[A-Z0-9]{8,10}$")

def generate_referral_code(length: int = CODE_LENGTH) -> str:
    """Generate a random referral code"""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))

def is_valid_referral_code(code: str) -> bool:
    """Check code shape before touching the store"""
    return bool(code) and CODE_PATTERN.fullmatch(code) is not None

def normalize_referral_code(code: str) -> str:
    return (code or "").strip().upper()

def build_referral_link(code: str, base_url: str) -> str:
    """Public link for a code; the /r/{code} path is a published contract"""
    return f"{base_url.rstrip('/')}/r/{code}"
