"""Layered configuration: .signmon/config.toml -> SIGNMON_* env vars -> defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib  # 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]


@dataclass(frozen=True, slots=True)
class RetentionConfig:
    """Caps and retention horizon for the in-memory logs."""

    request_log_size: int = 1000
    error_log_size: int = 500
    snapshot_log_size: int = 100
    retention_minutes: int = 60
    prune_interval_seconds: float = 300.0


@dataclass(frozen=True, slots=True)
class SamplerConfig:
    """System snapshot sampling settings."""

    interval_seconds: float = 30.0
    cpu_sample_interval: float = 0.1


@dataclass(frozen=True, slots=True)
class HealthConfig:
    """Health check and alert thresholds."""

    response_time_threshold_ms: float = 5000.0
    check_timeout_seconds: float = 10.0
    memory_warning_percent: float = 75.0
    memory_critical_percent: float = 90.0
    cpu_usage_percent: float = 80.0
    load_factor: float = 0.8
    error_rate: float = 0.1
    process_memory_limit_mb: int = 0  # 0 = host total memory
    restart_window_seconds: float = 300.0


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Hosted database/storage backend settings."""

    url: str = ""
    api_key: str = ""
    probe_table: str = "profiles"
    media_bucket: str = "media"

    @property
    def configured(self) -> bool:
        return bool(self.url and self.api_key)


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Deployment identity reported by status endpoints."""

    environment: str = "development"
    version: str = "1.0.0"
    log_level: str = "WARNING"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@dataclass(frozen=True, slots=True)
class SignmonConfig:
    """Top-level configuration container."""

    project_path: Path = field(default_factory=Path.cwd)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    app: AppConfig = field(default_factory=AppConfig)

    @property
    def signmon_dir(self) -> Path:
        return self.project_path / ".signmon"

    @classmethod
    def load(cls, project_path: Path | None = None) -> SignmonConfig:
        """Load config with layering: TOML file -> env vars -> defaults."""
        project = Path(project_path) if project_path else Path.cwd()
        toml_path = project / ".signmon" / "config.toml"

        toml_data: dict = {}
        if toml_path.is_file():
            with open(toml_path, "rb") as f:
                toml_data = tomllib.load(f)

        retention_data = toml_data.get("retention", {})
        sampler_data = toml_data.get("sampler", {})
        health_data = toml_data.get("health", {})
        backend_data = toml_data.get("backend", {})
        app_data = toml_data.get("app", {})

        # Use literal defaults (slots=True prevents class-level attribute access)
        _retention = RetentionConfig()
        _sampler = SamplerConfig()
        _health = HealthConfig()
        _backend = BackendConfig()
        _app = AppConfig()

        def _pick(env: str, section: dict, key: str, default):
            return os.environ.get(env, section.get(key, default))

        retention = RetentionConfig(
            request_log_size=int(
                _pick("SIGNMON_REQUEST_LOG_SIZE", retention_data,
                      "request_log_size", _retention.request_log_size)
            ),
            error_log_size=int(
                _pick("SIGNMON_ERROR_LOG_SIZE", retention_data,
                      "error_log_size", _retention.error_log_size)
            ),
            snapshot_log_size=int(
                _pick("SIGNMON_SNAPSHOT_LOG_SIZE", retention_data,
                      "snapshot_log_size", _retention.snapshot_log_size)
            ),
            retention_minutes=int(
                _pick("SIGNMON_RETENTION_MINUTES", retention_data,
                      "retention_minutes", _retention.retention_minutes)
            ),
            prune_interval_seconds=float(
                _pick("SIGNMON_PRUNE_INTERVAL", retention_data,
                      "prune_interval_seconds", _retention.prune_interval_seconds)
            ),
        )

        sampler = SamplerConfig(
            interval_seconds=float(
                _pick("SIGNMON_SAMPLE_INTERVAL", sampler_data,
                      "interval_seconds", _sampler.interval_seconds)
            ),
            cpu_sample_interval=float(
                _pick("SIGNMON_CPU_SAMPLE_INTERVAL", sampler_data,
                      "cpu_sample_interval", _sampler.cpu_sample_interval)
            ),
        )

        health = HealthConfig(
            response_time_threshold_ms=float(
                _pick("SIGNMON_RESPONSE_TIME_THRESHOLD_MS", health_data,
                      "response_time_threshold_ms", _health.response_time_threshold_ms)
            ),
            check_timeout_seconds=float(
                _pick("SIGNMON_CHECK_TIMEOUT", health_data,
                      "check_timeout_seconds", _health.check_timeout_seconds)
            ),
            memory_warning_percent=float(
                health_data.get("memory_warning_percent", _health.memory_warning_percent)
            ),
            memory_critical_percent=float(
                health_data.get("memory_critical_percent", _health.memory_critical_percent)
            ),
            cpu_usage_percent=float(
                health_data.get("cpu_usage_percent", _health.cpu_usage_percent)
            ),
            load_factor=float(health_data.get("load_factor", _health.load_factor)),
            error_rate=float(health_data.get("error_rate", _health.error_rate)),
            process_memory_limit_mb=int(
                _pick("SIGNMON_MEMORY_LIMIT_MB", health_data,
                      "process_memory_limit_mb", _health.process_memory_limit_mb)
            ),
            restart_window_seconds=float(
                health_data.get("restart_window_seconds", _health.restart_window_seconds)
            ),
        )

        backend = BackendConfig(
            url=os.environ.get(
                "SIGNMON_BACKEND_URL",
                os.environ.get("SUPABASE_URL", backend_data.get("url", _backend.url)),
            ),
            api_key=os.environ.get(
                "SIGNMON_BACKEND_KEY",
                os.environ.get(
                    "SUPABASE_SERVICE_ROLE_KEY",
                    backend_data.get("api_key", _backend.api_key),
                ),
            ),
            probe_table=backend_data.get("probe_table", _backend.probe_table),
            media_bucket=_pick("SIGNMON_MEDIA_BUCKET", backend_data,
                               "media_bucket", _backend.media_bucket),
        )

        app = AppConfig(
            environment=_pick("SIGNMON_ENVIRONMENT", app_data,
                              "environment", _app.environment),
            version=_pick("SIGNMON_VERSION", app_data, "version", _app.version),
            log_level=_pick("SIGNMON_LOG_LEVEL", app_data, "log_level", _app.log_level),
        )

        return cls(
            project_path=project,
            retention=retention,
            sampler=sampler,
            health=health,
            backend=backend,
            app=app,
        )
