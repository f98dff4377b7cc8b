from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

passwordHasher = PasswordHasher(encoding="utf-8")


def makePassword(password: str) -> str:
    """
    Hash a plain-text password using Argon2.

    Args:
        password (str): The plain-text password to be hashed.

    Returns:
        str: The Argon2 hash stored in `user_account.password_hash`.
    """
    return passwordHasher.hash(password)


def checkPassword(password: str, passwordHash: str | None) -> bool:
    """
    Verify a plain-text password against a stored Argon2 hash.

    Accounts registered through SSO carry no hash and never match.

    Args:
        password (str): The plain-text password to check.
        passwordHash (str | None): The stored Argon2 hash.

    Returns:
        bool: True if the password matches the hash, False otherwise.
    """
    if not passwordHash:
        return False
    try:
        return passwordHasher.verify(passwordHash, password)
    except (VerificationError, InvalidHashError):
        return False
