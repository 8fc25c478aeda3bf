# communal_rewards/db_config.py
"""Database configuration and connection string management"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus

from communal_rewards.config import Settings

SUPPORTED_SCHEMES = ('postgresql', 'postgresql+psycopg2', 'sqlite')

@dataclass
class DatabaseCredentials:
    """Database credentials container with validation"""
    host: str
    port: str
    name: str
    user: str
    password: str
    ssl_mode: str = 'prefer'

    def to_connection_string(self) -> str:
        """Generate database connection string with proper escaping"""
        return (
            f"postgresql://{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.name}?sslmode={self.ssl_mode}"
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> 'DatabaseCredentials':
        """Create credentials from the individual DB_* settings"""
        if not settings.DB_PASSWORD:
            raise ValueError("DB_PASSWORD setting is required when DATABASE_URL is not set")
        return cls(
            host=settings.DB_HOST,
            port=settings.DB_PORT,
            name=settings.DB_NAME,
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
            ssl_mode=settings.DB_SSL_MODE
        )

class DatabaseManager:
    """Resolves the connection string from settings"""

    @staticmethod
    def validate_url(url: str) -> bool:
        """Check the URL uses a supported dialect"""
        scheme = url.split('://', 1)[0] if '://' in url else ''
        return scheme in SUPPORTED_SCHEMES

    @classmethod
    def connection_string(cls, settings: Settings, url: Optional[str] = None) -> str:
        """
        Get the database connection string.

        Args:
            settings: Application settings
            url: Explicit URL, overrides settings

        Returns:
            Database connection string

        Raises:
            ValueError: If no usable configuration is present
        """
        url = url or settings.DATABASE_URL
        if url:
            if not cls.validate_url(url):
                raise ValueError(f"Unsupported database URL scheme: {url.split('://', 1)[0]}")
            return url

        return DatabaseCredentials.from_settings(settings).to_connection_string()
