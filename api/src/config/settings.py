"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="baraza", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Authentication (tokens are issued by the external auth service)
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=15, description="Access token expiration (minutes)"
    )

    # Storage
    storage_backend: Literal["cassandra", "memory"] = Field(
        default="cassandra",
        description="Repository backend (memory is for development and tests)",
    )

    # Redis
    redis_enabled: bool = Field(default=True, description="Connect to Redis")
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    redis_health_check_interval: int = Field(
        default=30, description="Health check interval"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(default="baraza", description="Cassandra keyspace")
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Request timeout"
    )

    # Content tree
    comment_max_depth: int = Field(
        default=5, ge=0, description="Maximum nesting depth of a comment"
    )
    comment_depth_policy: Literal["reject", "reparent"] = Field(
        default="reject",
        description="What to do with a reply below the maximum depth",
    )

    # Moderation
    severity_high_report_count: int = Field(
        default=5, ge=1, description="Reports in a cycle that make it high severity"
    )
    severity_medium_report_count: int = Field(
        default=2, ge=1, description="Reports in a cycle that make it medium severity"
    )
    moderation_queue_limit: int = Field(
        default=100, description="Default size of the moderation queue page"
    )

    # Per-content locking
    lock_timeout_seconds: float = Field(
        default=10.0, description="Lifetime of a distributed content lock"
    )
    lock_blocking_timeout_seconds: float = Field(
        default=5.0, description="How long a call waits for a busy content lock"
    )

    # Collaborators
    notification_timeout_seconds: float = Field(
        default=2.0, description="Upper bound for a single event publish"
    )
    notification_channel: str = Field(
        default="forum:events", description="Redis pub/sub channel for forum events"
    )
    account_service_url: str | None = Field(
        default=None, description="Base URL of the user-account service"
    )
    account_service_api_key: str | None = Field(
        default=None, description="API key for the user-account service"
    )
    account_service_timeout_seconds: float = Field(
        default=5.0, description="Timeout for user-account service calls"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_timestamp: bool = Field(default=True, description="Include timestamp")
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_include_stack_info: bool = Field(default=True, description="Include stack info")
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def account_service_configured(self) -> bool:
        """Check if the external user-account service is configured."""
        return bool(self.account_service_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
