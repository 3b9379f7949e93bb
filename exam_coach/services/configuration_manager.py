"""Configuration loading for the Exam Coach System.

Settings come from three YAML layers in ``config_path``, applied in order:
``config.yaml``, ``config.<ENVIRONMENT>.yaml`` and ``providers.yaml``.
Provider API keys are usually written as ``${VAR}`` and resolved from the
environment, which may be seeded from a ``.env`` file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..models.enums import RequestType
from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

DEFAULT_MODELS = {
    RequestType.EXAMINER.value: "gemini-2.5-flash",
    RequestType.COACH.value: "gemini-2.5-pro",
    RequestType.ASSISTANT.value: "gemini-2.5-flash",
}

DEFAULT_TIMEOUTS = {
    RequestType.EXAMINER.value: 30,
    RequestType.COACH.value: 60,
    RequestType.ASSISTANT.value: 30,
}

MB = 1024 * 1024
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """Where and how to log; ``file_output`` is on when a file is configured."""

    level: str = "WARNING"
    format: str = "human"
    file_path: Optional[str] = None
    max_file_size: int = 10 * MB
    backup_count: int = 5
    console_output: bool = True
    file_output: bool = False


@dataclass
class ExamConfig:
    """Exam session settings."""

    subject: str = "React JS"
    max_questions: int = 5


class LLMProviderConfig(BaseModel):
    """One hosted-model provider with its per-role models and timeouts."""

    name: str = Field(..., description="Provider name")
    enabled: bool = Field(default=True, description="Whether provider is enabled")
    api_key: str = Field(..., description="Resolved API key")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="REST base URL")
    models: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MODELS), description="Model per request type")
    timeouts: Dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_TIMEOUTS), description="Timeout in seconds per request type")
    temperature: Optional[float] = Field(default=None, description="Sampling temperature, model default when unset")

    @field_validator("temperature")
    @classmethod
    def check_temperature(cls, v):
        if v is not None and not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        return v

    @field_validator("timeouts")
    @classmethod
    def check_timeouts(cls, v):
        for request_type, seconds in v.items():
            if seconds < 1:
                raise ValueError(f"timeout for {request_type} must be at least 1 second")
        return v

    def model_for(self, request_type: RequestType) -> str:
        return self.models.get(request_type.value, DEFAULT_MODELS[request_type.value])

    def timeout_for(self, request_type: RequestType) -> int:
        return self.timeouts.get(request_type.value, DEFAULT_TIMEOUTS[request_type.value])


class AppConfig(BaseModel):
    """Fully resolved application settings."""

    app_name: str = Field(default="Exam Coach", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Deployment environment")

    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")
    exam: ExamConfig = Field(default_factory=ExamConfig, description="Exam settings")

    llm_providers: List[LLMProviderConfig] = Field(default_factory=list, description="Enabled providers with a key")


class ConfigurationManager:
    """Loads, merges and validates the YAML configuration."""

    def __init__(self, config_path: str = "config", env_file: str = ".env"):
        """Initialize the configuration manager.

        Args:
            config_path: Directory holding the YAML files
            env_file: Optional dotenv file loaded before the YAML
        """
        self.config_path = Path(config_path)
        self.env_file = Path(env_file)
        self.config: Optional[AppConfig] = None
        self.logger = get_logger("configuration_manager")

    def initialize(self) -> None:
        """Load the environment and every YAML layer, then validate.

        Raises:
            ConfigurationError: If a file cannot be parsed or a value is invalid
        """
        self._load_dotenv()

        settings = AppConfig().model_dump()
        for path, data in self._config_layers():
            self.logger.info(f"Applying configuration from {path}")
            try:
                self._merge_sections(settings, data)
            except (AttributeError, TypeError) as e:
                raise ConfigurationError(f"Malformed section in {path}: {e}", config_key=str(path))

        providers_file = self.config_path / "providers.yaml"
        if providers_file.exists():
            settings["llm_providers"] = self._load_provider_configs(
                self._read_yaml(providers_file).get("providers") or {}
            )
        else:
            self.logger.warning(f"No provider file at {providers_file}")

        try:
            self.config = AppConfig.model_validate(settings)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

        self._validate_configuration()
        self.logger.info("Configuration loaded", extra={
            "environment": self.config.environment,
            "providers": [provider.name for provider in self.config.llm_providers],
        })

    def _load_dotenv(self) -> None:
        if self.env_file.exists():
            from dotenv import load_dotenv
            load_dotenv(self.env_file)
            self.logger.info(f"Loaded environment variables from {self.env_file}")

        os.environ.setdefault("ENVIRONMENT", "development")

    def _config_layers(self) -> Iterator[Tuple[Path, Dict[str, Any]]]:
        """Yield the main file, then the environment override, when present."""
        environment = os.environ["ENVIRONMENT"]
        for name in ("config.yaml", f"config.{environment}.yaml"):
            path = self.config_path / name
            if path.exists():
                yield path, self._read_yaml(path)

    def _merge_sections(self, settings: Dict[str, Any], data: Dict[str, Any]) -> None:
        """Fold the ``app``, ``logging`` and ``exam`` sections of one file into ``settings``."""
        app = data.get("app") or {}
        for yaml_key, field_name in (("name", "app_name"), ("version", "version"),
                                     ("debug", "debug"), ("environment", "environment")):
            if yaml_key in app:
                settings[field_name] = app[yaml_key]

        if "logging" in data:
            log = data["logging"] or {}
            target = settings["logging"]
            for key in ("level", "format", "backup_count", "console_output"):
                if key in log:
                    target[key] = log[key]
            if "max_size_mb" in log:
                target["max_file_size"] = log["max_size_mb"] * MB
            if "file" in log:
                target["file_path"] = log["file"]
                target["file_output"] = log["file"] is not None

        exam = data.get("exam") or {}
        for key in ("subject", "max_questions"):
            if key in exam:
                settings["exam"][key] = exam[key]

    def _load_provider_configs(self, providers: Dict[str, Any]) -> List[LLMProviderConfig]:
        """Build configs for enabled providers whose API key resolves."""
        configs = []
        for name, raw in providers.items():
            raw = raw or {}
            if not raw.get("enabled", False):
                self.logger.debug(f"Provider {name} is disabled")
                continue

            api_key = self._resolve_env_reference(raw.get("api_key", ""))
            if not api_key:
                self.logger.warning(f"No API key available for provider {name}, skipping it")
                continue

            try:
                configs.append(LLMProviderConfig(
                    name=name,
                    api_key=api_key,
                    base_url=raw.get("base_url") or DEFAULT_BASE_URL,
                    models={**DEFAULT_MODELS, **(raw.get("models") or {})},
                    timeouts={**DEFAULT_TIMEOUTS, **(raw.get("timeouts") or {})},
                    temperature=raw.get("temperature"),
                ))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid configuration for provider {name}: {e}", config_key=f"providers.{name}")
        return configs

    def _resolve_env_reference(self, value: Any) -> str:
        """Expand a ``${VAR}`` reference, returning an empty string when unset."""
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            variable = value[2:-1]
            resolved = os.getenv(variable, "")
            if not resolved:
                self.logger.warning(f"Environment variable {variable} not set")
            return resolved
        return value or ""

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {path}: {e}", config_key=str(path))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping at the top level", config_key=str(path))
        return data

    def _validate_configuration(self) -> None:
        config = self._require_config()

        if not config.llm_providers:
            self.logger.warning("No LLM providers configured")

        if config.exam.max_questions < 1:
            raise ConfigurationError("exam.max_questions must be at least 1", config_key="exam.max_questions")

        if not str(config.exam.subject).strip():
            raise ConfigurationError("exam.subject must not be empty", config_key="exam.subject")

        level = str(config.logging.level).strip().upper()
        if level not in LOG_LEVELS:
            raise ConfigurationError(
                f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {config.logging.level!r}",
                config_key="logging.level",
            )
        config.logging.level = level

    def _require_config(self) -> AppConfig:
        if not self.config:
            raise ConfigurationError("Configuration manager not initialized")
        return self.config

    def get_llm_provider_configs(self) -> Dict[str, LLMProviderConfig]:
        """Get enabled LLM provider configurations keyed by name."""
        return {provider.name: provider for provider in self._require_config().llm_providers if provider.enabled}

    def get_exam_config(self) -> ExamConfig:
        return self._require_config().exam

    def get_logging_config(self) -> LoggingConfig:
        return self._require_config().logging
