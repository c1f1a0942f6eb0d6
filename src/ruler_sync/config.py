"""Centralized configuration for ruler-sync using Pydantic Settings."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_LOG_LEVEL_PATTERN = r"^(debug|info|warning|error|critical)$"


class ObservabilityCollectorConfig(BaseModel):
    """Configuration for OTLP trace export."""

    model_config = {"extra": "forbid"}

    enabled: Annotated[
        bool,
        Field(
            description="Enable OTLP trace export to an external collector",
        ),
    ] = False

    otlp_protocol: Annotated[
        Literal["http", "grpc"],
        Field(
            description="OTLP transport protocol",
        ),
    ] = "http"

    collector_endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint (HTTP uses /v1/traces)",
            examples=["http://localhost:4317", "http://localhost:4318/v1/traces"],
        ),
    ] = "http://localhost:4318/v1/traces"

    timeout_seconds: Annotated[
        int,
        Field(
            ge=1,
            le=60,
            description="OTLP exporter timeout in seconds",
        ),
    ] = 10

    grpc_insecure: Annotated[
        bool,
        Field(
            description="Allow insecure gRPC (plaintext) connections",
        ),
    ] = True

    resource_attributes: Annotated[
        dict[str, str],
        Field(
            description="Additional OpenTelemetry resource attributes for trace export",
        ),
    ] = Field(default_factory=dict)


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables and ``.env``.

    Command-line flags take precedence; the CLI passes them as init values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
        extra="ignore",
    )

    # Ruler connection
    cortex_address: str = Field(default="", description="Address of the Cortex cluster")
    cortex_tenant_id: str = Field(
        default="",
        # CORTEX_TENTANT_ID is the historical spelling of the variable
        validation_alias=AliasChoices("cortex_tenant_id", "cortex_tentant_id"),
        description="Cortex tenant id, sent as X-Scope-OrgID",
    )
    cortex_api_key: str = Field(default="", description="API key used as basic auth password")
    ruler_api_prefix: str = Field(default="/api/prom/rules", description="Path prefix of the ruler API")

    # HTTP settings
    http_timeout: int = Field(default=30, ge=1, description="HTTP request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Connection retries per request")

    # Rule files
    default_namespace: str = Field(default="", description="Namespace for rule files that do not declare one")

    # Logging
    log_level: str = Field(default="info", pattern=_LOG_LEVEL_PATTERN, description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    # Metrics
    metrics_file: Path | None = Field(
        default=None, description="Write Prometheus text exposition here after a load (textfile collector)"
    )

    # Tracing
    otlp_enabled: bool = Field(default=False, description="Export traces over OTLP")
    otlp_protocol: Literal["http", "grpc"] = Field(default="http", description="OTLP transport protocol")
    otlp_endpoint: str = Field(default="http://localhost:4318/v1/traces", description="OTLP collector endpoint")
    otlp_timeout_seconds: int = Field(default=10, ge=1, le=60, description="OTLP exporter timeout in seconds")

    @field_validator("log_level", mode="before")
    @classmethod
    def _lower_log_level(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @field_validator("cortex_address")
    @classmethod
    def _strip_address(cls, value: str) -> str:
        return value.strip().rstrip("/")

    def missing_remote_settings(self) -> list[str]:
        """Names of the settings a ruler connection requires but are unset."""
        missing = []
        if not self.cortex_address:
            missing.append("CORTEX_ADDRESS (--address)")
        if not self.cortex_tenant_id:
            missing.append("CORTEX_TENANT_ID (--id)")
        return missing

    def get_default_namespace(self) -> str | None:
        return self.default_namespace.strip() or None

    def get_collector_config(self) -> ObservabilityCollectorConfig:
        return ObservabilityCollectorConfig(
            enabled=self.otlp_enabled,
            otlp_protocol=self.otlp_protocol,
            collector_endpoint=self.otlp_endpoint,
            timeout_seconds=self.otlp_timeout_seconds,
        )
