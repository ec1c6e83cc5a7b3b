from passlib.context import CryptContext

password_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain: str) -> str:
    return password_context.hash(plain)


def password_matches(plain: str, hashed: str) -> bool:
    return password_context.verify(plain, hashed)
