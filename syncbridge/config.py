"""Application configuration"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    database_url: str = "sqlite:///./syncbridge.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"

    # Auth (optional)
    # When enabled, all routes (API, docs) are protected by HTTP Basic auth,
    # except for /health and the Linear webhook (which is origin-checked instead).
    auth_enabled: bool = False
    auth_username: str | None = None
    auth_password: str | None = None

    # Comma-separated list of IPs Linear delivers webhooks from.
    linear_ip_origins: str = "35.231.147.226,35.243.134.228"

    # Optional API key overrides. When set, they are used for every sync link
    # instead of the per-link encrypted keys.
    linear_api_key: str | None = None
    github_api_key: str | None = None

    # Hex-encoded AES-256 key used to decrypt the per-link API keys.
    encryption_key: str | None = None

    # Sync behavior
    # Comma-separated, case-insensitive allowlist of Linear label names mirrored to GitHub.
    allowed_labels: str = "bug,feature,enhancement,documentation,question,good first issue"
    # Linear comments starting with this prefix are internal and never mirrored.
    internal_comment_prefix: str = "Gerrit changes:"
    # Ids ending with this suffix were created by the GitHub -> Linear direction.
    synthetic_id_suffix: str = "decafbad"
    # Drop the "[TEAM-123]" title prefix and the sync footer from mirrored issues.
    disable_linear_metadata: bool = False
    app_name: str = "SyncBridge"
    app_url: str = "https://github.com/syncbridge/syncbridge"

    # Outbound calls (fire-once unless max attempts is raised)
    outbound_timeout_seconds: float = 10.0
    outbound_max_attempts: int = 1
    outbound_retry_delay_seconds: float = 0.5
    github_api_url: str = "https://api.github.com"
    linear_api_url: str = "https://api.linear.app/graphql"

    class Config:
        env_file = ".env"
        case_sensitive = False


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty parts."""
    return [part.strip() for part in (value or "").split(",") if part.strip()]


settings = Settings()
