"""
Configuration management for Constituant.

Supports multiple environments (local, development, production) with
different database, classifier and import configurations. Source tables
are immutable values handed to the ingestion orchestrator.

Responsibility: Centralized configuration and environment management
"""

from enum import Enum
from typing import Optional, List, Dict, Tuple
import json
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment"""
    LOCAL = "local"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ImportMode(str, Enum):
    """Terminal step of the ingestion pipeline"""
    REVIEW = "review"
    DIRECT = "direct"


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    # Connection settings - prioritize DATABASE_URL env var
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    driver: str = Field(default="postgresql+asyncpg")
    host: Optional[str] = Field(default="localhost")
    port: Optional[int] = Field(default=5432)
    database: str = Field(default="constituant")
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)

    # Connection pool settings
    pool_size: int = Field(default=5)
    max_overflow: int = Field(default=10)
    pool_timeout: int = Field(default=30)
    pool_recycle: int = Field(default=3600)

    # Query settings
    echo: bool = Field(default=False)
    echo_pool: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True  # Allow alias matching
    )

    @property
    def connection_string(self) -> str:
        """
        Build database connection string.

        Returns:
            SQLAlchemy async connection string
        """
        if self.database_url:
            url = self.database_url
            # Ensure async driver for async connections
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            if "postgresql" in url and "+asyncpg" not in url and "+psycopg" not in url:
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            if url.startswith("sqlite://"):
                url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
            return url

        if self.driver.startswith("sqlite"):
            return f"{self.driver}:///{self.database}"

        return f"{self.driver}://{self._auth()}{self._host_port()}/{self.database}"

    @property
    def sync_connection_string(self) -> str:
        """
        Build synchronous database connection string for Alembic migrations.

        Returns:
            SQLAlchemy sync connection string (without async drivers)
        """
        url = self.connection_string
        if "+asyncpg" in url:
            return url.replace("+asyncpg", "+psycopg")
        if "+aiosqlite" in url:
            return url.replace("+aiosqlite", "")
        return url

    def _auth(self) -> str:
        if not self.username:
            return ""
        auth = self.username
        if self.password:
            auth = f"{auth}:{self.password}"
        return f"{auth}@"

    def _host_port(self) -> str:
        host_port = self.host or "localhost"
        if self.port:
            host_port = f"{host_port}:{self.port}"
        return host_port


class ClassifierConfig(BaseSettings):
    """Language-model classification configuration"""

    enabled: bool = Field(default=True)
    api_key: Optional[str] = Field(default=None)
    api_url: str = Field(default="https://api.mistral.ai/v1/chat/completions")
    model: str = Field(default="mistral-small-latest")
    temperature: float = Field(default=0.3)
    max_tokens: int = Field(default=500)
    timeout_seconds: float = Field(default=30.0)

    # Retry policy: fixed delay between attempts
    max_retries: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=2.0, ge=0.0)

    max_full_text_chars: int = Field(default=3000)
    fallback_summary_chars: int = Field(default=500)
    delay_between_calls_seconds: float = Field(default=1.0, ge=0.0)

    model_config = SettingsConfigDict(
        env_prefix="CLASSIFIER_",
        case_sensitive=False,
        extra="ignore"
    )


class VoteConfig(BaseSettings):
    """Citizen vote protection settings"""

    rate_limit: int = Field(default=10, ge=1)
    rate_window_seconds: int = Field(default=3600, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="VOTE_",
        case_sensitive=False,
        extra="ignore"
    )


class ImportConfig(BaseSettings):
    """Bill import pipeline settings"""

    mode: ImportMode = Field(default=ImportMode.REVIEW)
    max_bills_per_source: int = Field(default=50, ge=1)
    delay_between_sources_seconds: float = Field(default=2.0, ge=0.0)

    # Status lifecycle
    lookahead_days: int = Field(default=7, ge=0)

    # Records older than this are considered stale by adapters
    fetch_days_back: int = Field(default=90, ge=1)

    # Placeholder vote dates for direct publishing when the real date is unknown
    provisional_vote_min_days: int = Field(default=30, ge=0)
    provisional_vote_max_days: int = Field(default=90, ge=0)

    # Vote date given to approved bills that carry none
    approval_default_vote_days: int = Field(default=7, ge=0)

    # Full text retrieval before classification
    fetch_full_text: bool = Field(default=False)
    full_text_max_chars: int = Field(default=50000)
    full_text_timeout_seconds: float = Field(default=20.0)

    default_chambers: Dict[str, str] = Field(
        default={
            "france": "Assemblée Nationale",
            "eu": "European Parliament",
        }
    )

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("provisional_vote_max_days")
    @classmethod
    def check_provisional_window(cls, v, info):
        """Provisional window must not be inverted"""
        low = info.data.get("provisional_vote_min_days", 0)
        if v < low:
            raise ValueError("provisional_vote_max_days must be >= provisional_vote_min_days")
        return v


class SourceConfig(BaseModel):
    """
    Immutable description of one bill source.

    Priority 1 is fetched first.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    enabled: bool = True
    priority: int = Field(ge=1)
    level: str
    base_url: str
    endpoints: Dict[str, str] = Field(default_factory=dict)
    request_delay_seconds: float = Field(default=1.0, ge=0.0)
    timeout_seconds: float = Field(default=30.0)
    attribution: Optional[str] = None

    def endpoint_url(self, name: str) -> str:
        """Resolve an endpoint to an absolute URL"""
        endpoint = self.endpoints[name]
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url.rstrip('/')}{endpoint}"


def default_sources() -> Tuple[SourceConfig, ...]:
    """Source table used when no explicit table is provided."""
    return (
        SourceConfig(
            key="nosdeputes",
            name="NosDéputés.fr",
            priority=1,
            level="france",
            base_url="https://www.nosdeputes.fr",
            endpoints={
                "dossiers": "/dossiers/date/json",
                "search": "/recherche/projets?format=json",
                "scrutins": "/17/scrutins/json",
            },
            request_delay_seconds=2.0,
            attribution="Données issues de NosDéputés.fr (Licence ODbL)",
        ),
        SourceConfig(
            key="lafabrique",
            name="La Fabrique de la Loi",
            priority=2,
            level="france",
            base_url="https://www.lafabriquedelaloi.fr",
            endpoints={
                "dossiers": "/api/dossiers.csv",
            },
            request_delay_seconds=3.0,
            attribution="Source: La Fabrique de la Loi",
        ),
        SourceConfig(
            key="eu_parliament",
            name="European Parliament - Legislative Observatory",
            priority=3,
            level="eu",
            base_url="https://data.europarl.europa.eu",
            endpoints={
                "api": "/api/v2/documents",
                "oeil_rss": "https://oeil.secure.europarl.europa.eu/oeil/rss/search.do",
            },
            request_delay_seconds=1.0,
            attribution="Source: European Parliament Open Data Portal",
        ),
    )


class AppConfig(BaseSettings):
    """Application configuration"""

    # Environment
    environment: Environment = Field(default=Environment.LOCAL)
    debug: bool = Field(default=True)

    # Application metadata
    app_name: str = Field(default="Constituant")
    app_version: str = Field(default="1.0.0")

    # Logging
    log_level: str = Field(default="INFO")

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)

    # Shared secret for the admin endpoints; empty disables them
    admin_password: str = Field(default="")

    timezone: str = Field(default="Europe/Paris")

    # CORS settings
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins (JSON list or comma-separated in env)"
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from JSON string or comma-separated list"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            v = v.strip()
            if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                v = v[1:-1]
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


class Settings(BaseSettings):
    """
    Global settings container.

    Loads configuration from:
    1. Environment variables
    2. .env file
    3. Default values

    Example:
        settings = Settings()

        # Tests / local runs on SQLite
        settings = Settings(
            db=DatabaseConfig(DATABASE_URL="sqlite+aiosqlite:///./constituant.db")
        )
    """

    app: AppConfig = Field(default_factory=AppConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    vote: VoteConfig = Field(default_factory=VoteConfig)
    imports: ImportConfig = Field(default_factory=ImportConfig)
    sources: Tuple[SourceConfig, ...] = Field(default_factory=default_sources)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def enabled_sources(self) -> List[SourceConfig]:
        """Enabled sources, highest priority (lowest number) first"""
        return sorted(
            (source for source in self.sources if source.enabled),
            key=lambda source: source.priority,
        )


# Global settings instance (entry points only)
settings = Settings()
