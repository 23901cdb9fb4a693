"""Configuration schema using Pydantic.

Single data model with defaults, persisted to ~/.deskhost/config.json.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PluginsConfig(BaseModel):
    """Plugin discovery, install and runtime settings."""
    debug: bool = False  # Mock install/uninstall of official plugins (manifest edit only)
    manifest_filename: str = "package.json"
    modules_dir: str = "node_modules"  # Dependency tree folder inside a workspace
    package_manager: Literal["auto", "npm", "yarn", "pnpm"] = "auto"
    invoke_command: list[str] = Field(default_factory=lambda: ["deskhost-cli", "invoke"])
    build_config_module: str = "@deskhost/service/build_config"
    compatible_project_types: list[str] = Field(default_factory=lambda: ["vue"])
    logo_cache_size: int = 50


class CommandsConfig(BaseModel):
    """Command palette settings."""
    recent_limit: int = 20


class LogsConfig(BaseModel):
    """User-visible console log settings."""
    max_entries: int = 500


class Config(BaseSettings):
    """Root configuration for deskhost."""
    model_config = SettingsConfigDict(env_prefix="DESKHOST_", env_nested_delimiter="__")

    workspace: str = "~"
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    logs: LogsConfig = Field(default_factory=LogsConfig)

    @property
    def workspace_path(self) -> Path:
        """Get expanded default workspace path."""
        return Path(self.workspace).expanduser()
