import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from config.constants import (
    DEFAULT_CONFIG,
    ENV_VARS,
    MYNEST_CONFIG,
    is_valid_thumbnail_count,
    is_valid_timeout,
    is_valid_worker_count,
)
from .exceptions import ConfigurationException


@dataclass
class SniffConfig:
    timeout: int = DEFAULT_CONFIG["request_timeout"]
    max_retries: int = DEFAULT_CONFIG["max_retries"]
    size_probe_timeout: float = DEFAULT_CONFIG["size_probe_timeout"]
    size_workers: int = DEFAULT_CONFIG["size_workers"]
    max_html_bytes: int = DEFAULT_CONFIG["max_html_bytes"]
    user_agent: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Optional[str] = None
    proxy_url: Optional[str] = None

    headless: bool = DEFAULT_CONFIG["headless"]
    headless_timeout_ms: int = DEFAULT_CONFIG["headless_timeout_ms"]
    settle_ms: int = DEFAULT_CONFIG["settle_ms"]
    thumbnails: bool = DEFAULT_CONFIG["thumbnails"]
    max_thumbnails: int = DEFAULT_CONFIG["max_thumbnails"]
    thumbnail_timeout: float = DEFAULT_CONFIG["thumbnail_timeout"]
    allow_blob: bool = DEFAULT_CONFIG["allow_blob"]

    api_url: str = ""
    api_token: str = ""
    default_category: str = MYNEST_CONFIG["default_category"]

    output_format: str = DEFAULT_CONFIG["default_output_format"]
    log_level: str = "INFO"
    log_file: Optional[str] = None
    quiet_mode: bool = False
    verbose: bool = False

    def validate(self):
        errors = []

        if not is_valid_timeout(self.timeout):
            errors.append("Timeout must be between 1 and 300 seconds")

        if not (0 < self.size_probe_timeout <= 60):
            errors.append("Size probe timeout must be between 0 and 60 seconds")

        if not is_valid_worker_count(self.size_workers):
            errors.append("Size workers must be between 1 and 32")

        if not (0 <= self.max_retries <= 10):
            errors.append("Max retries must be between 0 and 10")

        if not (1024 <= self.max_html_bytes <= 50 * 1024 * 1024):
            errors.append("Max HTML bytes must be between 1KB and 50MB")

        if not is_valid_thumbnail_count(self.max_thumbnails):
            errors.append("Max thumbnails must be between 0 and 10")

        if not (0 < self.thumbnail_timeout <= 30):
            errors.append("Thumbnail timeout must be between 0 and 30 seconds")

        if self.settle_ms < 0 or self.headless_timeout_ms <= 0:
            errors.append("Headless timings must be positive")

        if self.output_format not in ("tsv", "json", "jsonl", "csv"):
            errors.append("Output format must be one of tsv, json, jsonl, csv")

        if self.api_url and not self.api_url.startswith(("http://", "https://")):
            errors.append("API URL must start with http:// or https://")

        for k, v in self.headers.items():
            if not k or v is None or v == "":
                errors.append(f"Invalid header: {k}={v}")

        if errors:
            raise ConfigurationException(
                "Configuration validation failed",
                context={"errors": errors, "config": self.to_dict()},
            )

    @property
    def has_api_credentials(self) -> bool:
        return bool(self.api_url and self.api_token)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["headers"] = dict(self.headers)
        if data.get("api_token"):
            data["api_token"] = "***"
        return data

    def apply_overrides(self, values: Mapping[str, Any]) -> "SniffConfig":
        known = {f.name: f for f in fields(self)}
        for key, value in values.items():
            if key not in known or value is None:
                continue
            current = getattr(self, key)
            try:
                if isinstance(current, bool):
                    value = value if isinstance(value, bool) else str(value).strip().lower() in ("1", "true", "yes", "on")
                elif isinstance(current, int):
                    value = int(value)
                elif isinstance(current, float):
                    value = float(value)
                elif isinstance(current, dict):
                    value = dict(value)
            except (TypeError, ValueError):
                raise ConfigurationException(f"Invalid value for {key}", config_key=key, config_value=value)
            setattr(self, key, value)
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "SniffConfig":
        env = os.environ if environ is None else environ
        cfg = cls()
        cfg.apply_overrides({attr: env[var] for var, attr in ENV_VARS.items() if env.get(var)})
        cfg.apply_overrides(overrides)
        return cfg
