from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from backend.config import Settings
from backend.errors import AuthError

# -----------------------------
# Безопасность: пароли и JWT
# -----------------------------


class PasswordHasher:
    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return self._context.verify(password, hashed)
        except (ValueError, TypeError):
            # в БД лежит что-то, что не является bcrypt-хешем
            return False

    def dummy_verify(self) -> None:
        """Тратит столько же времени, сколько настоящая проверка (для неизвестного пользователя)."""
        self._context.dummy_verify()


class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=1)):
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(seconds=settings.token_ttl_seconds),
        )

    def issue(self, user_id: str) -> str:
        expire = datetime.now(timezone.utc) + self.ttl
        return jwt.encode({"sub": user_id, "exp": expire}, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError:
            raise AuthError("Invalid token")
        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise AuthError("Invalid token")
        return user_id
