"""Configuration management for Autocoder."""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from autocoder.exceptions import ConfigurationError


# Paths
DEFAULT_CONFIG_PATH = Path("~/.autocoder/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "autocoder.yaml"
CREDENTIAL_ENV_VAR = "OPENAI_API_KEY"

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful coding assistant. You work inside a project directory "
    "and change it only through the provided tools. Use relative paths. "
    "When the task is done, reply with a short summary of what you changed."
)


class ModelConfig(BaseModel):
    """Model configuration."""

    provider: str = "openai"
    model: str = "gpt-4o"
    temperature: float = 0.2
    max_tokens: int = 4096
    api_key: str = ""
    base_url: str = ""
    timeout: float = 120.0


class AgentConfig(BaseModel):
    """Tool loop and feedback loop limits."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_history_messages: int = Field(default=40, ge=1)
    max_tool_hops: int = Field(default=10, ge=1)
    max_turns: int = Field(default=10, ge=1)
    retry_pause_seconds: float = Field(default=1.0, ge=0.0)


class ShellToolConfig(BaseModel):
    """Shell tool configuration."""

    timeout: int = 120
    max_output_chars: int = 20000
    blocked: list[str] = [
        "rm -rf /",
        "mkfs",
        ":(){:|:&};:",
    ]
    allowed_commands: list[str] = []


class ToolsConfig(BaseModel):
    """Tools configuration."""

    shell: ShellToolConfig = Field(default_factory=ShellToolConfig)


class WorkspaceConfig(BaseModel):
    """Sandbox root and test convention."""

    path: str = "./project"
    tests_dir: str = "tests"
    test_command: str = "pytest --maxfail=1 --disable-warnings -q"
    test_timeout: int = 300


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for Autocoder."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="AUTOCODER_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment and .env values override YAML values passed as init kwargs."""
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file.

        Raises:
            ConfigurationError if the file is not valid YAML or fails validation
        """
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {config_path}: {e}")

    @classmethod
    def load(cls) -> "Config":
        """Load configuration, preferring env vars over YAML."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)
        # Never persist the credential.
        data.get("model", {}).pop("api_key", None)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def resolved_api_key(self) -> str:
        """Return the model-service credential, falling back to OPENAI_API_KEY."""
        configured = (self.model.api_key or "").strip()
        if configured:
            return configured
        return os.environ.get(CREDENTIAL_ENV_VAR, "").strip()

    def resolved_workspace_path(self, runtime_base: Path | str | None = None) -> Path:
        """Resolve workspace path, anchoring relative paths to runtime base/cwd."""
        raw = Path(self.workspace.path).expanduser()
        if raw.is_absolute():
            return raw.resolve()
        anchor = Path(runtime_base).expanduser().resolve() if runtime_base is not None else Path.cwd().resolve()
        return (anchor / raw).resolve()


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
