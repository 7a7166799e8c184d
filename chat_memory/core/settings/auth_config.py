"""Bearer token verification configuration."""

from pydantic import BaseModel, SecretStr


class AuthConfig(BaseModel, frozen=True):
    """Settings used to verify tokens issued by the identity provider."""

    secret_key: SecretStr
    algorithm: str
    audience: str | None = None
