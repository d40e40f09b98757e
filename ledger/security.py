"""
Credential hashing.

Passwords are hashed with Argon2 before they reach any session, so the
plaintext never lands in the database, in SQL echo output, or in logs.

Argon2 won the Password Hashing Competition (2015). It is memory-hard as
well as time-hard, which makes GPU brute force much more expensive than
against bcrypt. passlib's CryptContext handles the salt and encodes the
parameters into the hash string; if the scheme is ever replaced,
deprecated="auto" keeps old hashes verifiable.
"""

from passlib.context import CryptContext


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)
