"""Centralized configuration for redis_qparser."""

import os


class Config:
    """
    redis_qparser configuration with environment variable overrides.

    All process-wide values live here with sensible defaults. Plugin
    initialisation arguments override the Redis connection settings
    for the pool they create.
    """

    @staticmethod
    def _parse_int(name: str, default: str) -> int:
        """Parse an integer environment variable."""
        raw = os.getenv(name, default)
        try:
            return int(raw)
        except ValueError as e:
            raise ValueError(f"Invalid {name} environment variable: {e}")

    # ========================================================================
    # Redis Configuration
    # ========================================================================
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    REDIS_DB: int = _parse_int.__func__("REDIS_DB", "0")
    REDIS_PASSWORD: str | None = os.getenv("REDIS_PASSWORD") or None
    REDIS_MAX_CONNECTIONS: int = _parse_int.__func__("REDIS_MAX_CONNECTIONS", "8")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = float(
        os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "2")
    )
    REDIS_SOCKET_TIMEOUT: float = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2"))
    # Seconds a request waits for a free pooled connection
    REDIS_POOL_TIMEOUT: float = float(os.getenv("REDIS_POOL_TIMEOUT", "5"))

    # ========================================================================
    # Retrieval Configuration
    # ========================================================================
    REDIS_MAX_RETRIES: int = _parse_int.__func__("REDIS_MAX_RETRIES", "0")
    REDIS_SLOW_OPERATION_MS: float = float(os.getenv("REDIS_SLOW_OPERATION_MS", "100"))

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration consistency.

        Returns:
            True if validation passes

        Raises:
            ValueError: If validation fails
        """
        errors = []

        if cls.REDIS_MAX_CONNECTIONS <= 0:
            errors.append(
                f"REDIS_MAX_CONNECTIONS must be > 0, got {cls.REDIS_MAX_CONNECTIONS}"
            )
        if cls.REDIS_SOCKET_CONNECT_TIMEOUT <= 0:
            errors.append(
                "REDIS_SOCKET_CONNECT_TIMEOUT must be > 0, "
                f"got {cls.REDIS_SOCKET_CONNECT_TIMEOUT}"
            )
        if cls.REDIS_SOCKET_TIMEOUT <= 0:
            errors.append(
                f"REDIS_SOCKET_TIMEOUT must be > 0, got {cls.REDIS_SOCKET_TIMEOUT}"
            )
        if cls.REDIS_POOL_TIMEOUT <= 0:
            errors.append(f"REDIS_POOL_TIMEOUT must be > 0, got {cls.REDIS_POOL_TIMEOUT}")
        if cls.REDIS_DB < 0:
            errors.append(f"REDIS_DB must be >= 0, got {cls.REDIS_DB}")
        if cls.REDIS_MAX_RETRIES < 0:
            errors.append(f"REDIS_MAX_RETRIES must be >= 0, got {cls.REDIS_MAX_RETRIES}")
        if cls.REDIS_SLOW_OPERATION_MS < 0:
            errors.append(
                f"REDIS_SLOW_OPERATION_MS must be >= 0, got {cls.REDIS_SLOW_OPERATION_MS}"
            )

        if errors:
            raise ValueError(f"Config validation failed: {'; '.join(errors)}")

        return True
