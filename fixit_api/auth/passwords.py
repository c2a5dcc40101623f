import bcrypt

from fixit_api.core import config

# bcrypt only looks at the first 72 bytes.
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


_DUMMY_HASH = None


def burn_password_check(password: str) -> None:
    """Spend the same bcrypt work as a real check for an unknown account."""
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_password("campus-fixit-placeholder")
    verify_password(password, _DUMMY_HASH)
