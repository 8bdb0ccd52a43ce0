"""Configuration models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("postgres", description="Database name")
    user: str = Field("postgres", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    statement_timeout_ms: int = Field(5000, description="Per-statement timeout", ge=100)
    pool_min_size: int = Field(1, ge=1)
    pool_max_size: int = Field(10, ge=1)
    pool_timeout: float = Field(10.0, description="Seconds to wait for a pooled connection", gt=0)


class SupabaseConfig(BaseModel):
    """Hosted auth and object storage configuration."""

    url: Optional[str] = Field(None, description="Project URL, e.g. https://xyz.supabase.co")
    service_role_key: Optional[str] = Field(None, description="Service role key (prefer service_role_key_env)")
    service_role_key_env: Optional[str] = Field(
        "SUPABASE_SERVICE_ROLE_KEY", description="Environment variable for the service role key"
    )
    anon_key: Optional[str] = Field(None, description="Anon key (prefer anon_key_env)")
    anon_key_env: Optional[str] = Field("SUPABASE_ANON_KEY", description="Environment variable for the anon key")
    vcf_bucket: str = Field("vcf_files", description="Bucket holding exchange artifacts")
    signed_url_ttl: int = Field(60, description="Signed URL lifetime in seconds", ge=1)
    http_timeout: float = Field(10.0, description="Timeout for storage downloads", gt=0)


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field("127.0.0.1", description="Bind address")
    port: int = Field(3000, description="Bind port", ge=1, le=65535)
    log_level: str = Field("INFO", description="Log level")
    admin_emails: List[str] = Field(
        default_factory=list,
        description="E-mails allowed on admin endpoints (empty allows any authenticated user)",
    )

    @field_validator("admin_emails")
    @classmethod
    def normalize_emails(cls, v: List[str]) -> List[str]:
        """Compare admin e-mails case-insensitively."""
        return [email.strip().lower() for email in v if email and email.strip()]


class CohortConfig(BaseModel):
    """Cohort lifecycle defaults."""

    default_max_members: int = Field(5, description="Capacity for new clusters", ge=1)
    default_category: str = Field("general", description="Category for new clusters")
    fallback_tag: str = Field("NEARR", description="Name suffix when no profession is shown")
    auto_reset_after_downloads: bool = Field(
        False, description="Reset the cohort once every member has downloaded the contacts"
    )
    leaderboard_limit: int = Field(100, ge=1, le=1000)


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    cohorts: CohortConfig = Field(default_factory=CohortConfig)
