"""Configuration management for the Telegraph Tools CLI."""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

CONFIG_PATH_ENV = "TELEGRAPH_TOOLS_CLI_CONFIG"
FORMATS = ("markdown", "html")


def config_path() -> Path:
    """Location of the YAML config; the env var wins over ~/.config."""
    override = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "telegraph-tools" / "config.yaml"


@dataclass
class Config:
    """CLI configuration."""

    access_token: str | None = None
    author_name: str | None = None
    author_url: str | None = None
    default_format: str = "markdown"

    @classmethod
    def load(cls) -> "Config":
        """Load config from disk or use defaults."""
        path = config_path()

        if path.exists():
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
                default_format = data.get("default_format", "markdown")
                return cls(
                    access_token=data.get("access_token"),
                    author_name=data.get("author_name"),
                    author_url=data.get("author_url"),
                    default_format=default_format if default_format in FORMATS else "markdown",
                )

        return cls()

    def save(self) -> Path:
        """Save config to file and return where it went."""
        path = config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "access_token": self.access_token,
            "author_name": self.author_name,
            "author_url": self.author_url,
            "default_format": self.default_format,
        }
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump({key: value for key, value in data.items() if value is not None}, f)
        path.chmod(0o600)
        return path
