import secrets

from .config import INVITE_TOKEN_LENGTH
from .exceptions import InvalidArgumentError

# No 0/O/o, 1/I/l: the codes get read aloud and typed by hand.
INVITE_TOKEN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789"


def generate_invite_token(length: int = INVITE_TOKEN_LENGTH) -> str:
    """Generate a random, URL-safe invite code of exactly `length` characters."""
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise InvalidArgumentError("length", "must be a positive integer")
    return "".join(secrets.choice(INVITE_TOKEN_ALPHABET) for _ in range(length))
