"""
Password hashing utilities using bcrypt.

Usage:
    from licensing.utils.password_hash import hash_password, verify_password

    hashed = hash_password("correct horse battery")
    is_valid = verify_password("correct horse battery", hashed)
"""
import bcrypt
import logging

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of the input
BCRYPT_MAX_BYTES = 72


def hash_password(plaintext: str) -> str:
    """
    Hash a password using bcrypt with a fresh salt.

    Args:
        plaintext: Plain text password

    Returns:
        Bcrypt hash as string (60 chars)

    Raises:
        ValueError: If the password is empty
    """
    if not plaintext:
        raise ValueError("Cannot hash empty password")

    password_bytes = plaintext.encode('utf-8')[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')


def verify_password(plaintext: str, password_hash: str) -> bool:
    """
    Verify a password against a stored bcrypt hash.

    Returns:
        True if password matches hash, False otherwise (including malformed hashes)
    """
    if not plaintext or not password_hash:
        logger.warning("Attempted to verify with empty password or hash")
        return False

    try:
        return bcrypt.checkpw(
            plaintext.encode('utf-8')[:BCRYPT_MAX_BYTES],
            password_hash.encode('utf-8'),
        )
    except ValueError as e:
        logger.error(f"Error verifying password hash: {e}")
        return False
