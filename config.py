"""
Configuration for the Series/Event GraphQL service
Environment-aware configuration based on APP_ENV
"""

import os
from dataclasses import dataclass
from typing import Optional, Literal
from urllib.parse import quote_plus
from pathlib import Path
from dotenv import load_dotenv

# Environment modes
EnvironmentMode = Literal["development", "test", "production"]


def load_app_environment(mode: Optional[str] = None) -> str:
    """
    Load environment variables from the appropriate .env file.

    Priority:
    1. Explicit 'mode' argument
    2. APP_ENV environment variable
    3. Default to 'development'

    Loads .env.{mode} if it exists, falling back to .env
    """
    if not mode:
        mode = os.getenv('APP_ENV', 'development')

    base_path = Path(__file__).parent
    env_file = base_path / f'.env.{mode}'

    if env_file.exists():
        # override=False lets variables set by the host take precedence
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(base_path / '.env', override=False)

    return mode


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, '').strip()
    return float(value) if value else None


def _flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


@dataclass
class DatabaseConfig:
    """PostgreSQL connection and pool configuration"""

    host: str
    port: int
    database: str
    user: str
    password: str

    # Connection pool settings
    min_pool_size: int = 1
    max_pool_size: int = 10
    command_timeout: float = 60  # seconds
    acquire_timeout: Optional[float] = None  # None = wait for a free connection forever

    # Run SELECT 1 on a connection after a statement-level error before reusing it
    health_check_on_error: bool = False

    ssl_mode: str = "prefer"

    @property
    def asyncpg_dsn(self) -> str:
        """Get asyncpg DSN format"""
        return (
            f"postgresql://{self.user}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    @property
    def ssl_setting(self):
        """asyncpg expects True (require), False (disable) or 'prefer'"""
        if self.ssl_mode == 'require':
            return True
        if self.ssl_mode == 'disable':
            return False
        return 'prefer'

    @classmethod
    def from_environment(cls, mode: Optional[EnvironmentMode] = None) -> 'DatabaseConfig':
        """
        Load configuration from environment variables

        Environment variables:
        - APP_ENV: Environment mode (development, test, production)
        - DB_HOST: Database host (default: localhost)
        - DB_PORT: Database port (default: 5432)
        - DB_NAME: Database name (default: minitest)
        - DB_USER: Database user (default: postgres)
        - DB_PASSWORD: Database password
        - DB_SSL_MODE: SSL mode (default: prefer, require in production)
        - DB_MIN_POOL_SIZE / DB_MAX_POOL_SIZE: pool bounds (default: 1 / 10)
        - DB_ACQUIRE_TIMEOUT: seconds to wait for a free connection (default: unbounded)
        - DB_COMMAND_TIMEOUT: statement timeout in seconds (default: 60)
        - DB_HEALTH_CHECK_ON_ERROR: probe connections after statement errors (default: false)

        Args:
            mode: Override environment mode (default: reads from APP_ENV)
        """
        mode = load_app_environment(mode)

        config = cls(
            host=os.getenv('DB_HOST', 'localhost'),
            port=int(os.getenv('DB_PORT', '5432')),
            database=os.getenv('DB_NAME', 'minitest'),
            user=os.getenv('DB_USER', 'postgres'),
            password=os.getenv('DB_PASSWORD', ''),
            ssl_mode=os.getenv('DB_SSL_MODE', 'require' if mode == 'production' else 'prefer'),
            min_pool_size=int(os.getenv('DB_MIN_POOL_SIZE', '1')),
            max_pool_size=int(os.getenv('DB_MAX_POOL_SIZE', '10')),
            command_timeout=float(os.getenv('DB_COMMAND_TIMEOUT', '60')),
            acquire_timeout=_optional_float('DB_ACQUIRE_TIMEOUT'),
            health_check_on_error=_flag('DB_HEALTH_CHECK_ON_ERROR'),
        )

        config.validate_safety(mode)
        config.validate_pool()

        return config

    def validate_safety(self, mode: str):
        """Ensure configuration is safe for the requested mode"""
        if mode == 'test':
            if 'test' not in self.database:
                raise ValueError(f"SAFETY ERROR: Test mode requested but database is '{self.database}'. Test database must contain 'test'.")
            if 'prod' in self.database:
                raise ValueError(f"SAFETY ERROR: Test mode requested but database '{self.database}' appears to be production.")

    def validate_pool(self):
        """Pool bounds must describe at least one connection"""
        if self.max_pool_size < 1:
            raise ValueError(f"DB_MAX_POOL_SIZE must be at least 1, got {self.max_pool_size}")
        if not 0 <= self.min_pool_size <= self.max_pool_size:
            raise ValueError(
                f"DB_MIN_POOL_SIZE must be between 0 and {self.max_pool_size}, got {self.min_pool_size}"
            )


@dataclass
class ServerConfig:
    """HTTP listener configuration"""

    host: str = "127.0.0.1"
    port: int = 3000

    @classmethod
    def from_environment(cls) -> "ServerConfig":
        load_app_environment()
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "3000")),
        )
