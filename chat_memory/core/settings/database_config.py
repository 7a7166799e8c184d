"""Database connection configuration."""

from pydantic import BaseModel, SecretStr


class DatabaseConfig(BaseModel, frozen=True):
    """Database connection settings."""

    url: SecretStr
    echo: bool = False

    @property
    def async_url(self) -> str:
        """DB URL, with utf8mb4 charset appended for MySQL drivers."""
        base = self.url.get_secret_value()
        if base.startswith("mysql") and "?" not in base:
            return f"{base}?charset=utf8mb4"
        return base

    @property
    def is_sqlite(self) -> bool:
        """SQLite engines do not accept connection pool sizing arguments."""
        return self.url.get_secret_value().startswith("sqlite")
