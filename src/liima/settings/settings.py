"""
Configuration settings.
=======================

This module defines the configuration settings for the Liima 🧴 article merger.

Order of precedence:
    1. Environment variables
    2. `.env` file
    3. YAML configuration file, with the following locations:
        - User defined settings file ($LIIMA_CONFIG_FILE)
        - User defined settings ($XDG_CONFIG_HOME)
        - System wide settings ($XDG_CONFIG_DIRS)
        - Local settings: `./config.yaml`

"""
import logging
import os
from contextvars import ContextVar
from importlib.metadata import PackageNotFoundError, metadata
from pathlib import Path
from typing import Literal, Type

from platformdirs import site_config_dir, user_config_dir
from pydantic import Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .readwise import ReadwiseSettings

logger = logging.getLogger(__name__)

DEFAULT_BOT_ID = "Liima"

_pkg_name: str = (__package__ or "liima").split(".")[0]
_project_urls: list[str] = []
try:
    _dist_metadata = metadata(_pkg_name)
    _pkg_metadata = dict(_dist_metadata)
    _project_urls = _dist_metadata.get_all("Project-URL") or []
except PackageNotFoundError:
    _pkg_metadata = {"Name": _pkg_name, "Version": "0.0.0"}

# Project-URL entries look like "Homepage, https://..."
for _project_url in _project_urls:
    _label, _, _href = _project_url.partition(", ")
    if _label.lower() == "homepage":
        _pkg_metadata.setdefault("Home-page", _href)
_pkg_metadata.setdefault("Home-page", "")


# User defined settings
_user_config_path = Path(user_config_dir("liima"), "config.yaml")
DEFAULT_CONFIG_PATH = _user_config_path

# Locations to look for the settings file
# notice: order is reversed to give precedence to the user defined settings
_settings_file_location: list[Path] = [
    Path.cwd() / "config.yaml",  # Local settings
    Path(site_config_dir("liima")) / "config.yaml",  # System wide settings
    _user_config_path
]
if _conf_file := os.getenv("LIIMA_CONFIG_FILE"):
    _conf_file = Path(_conf_file)
    _settings_file_location.append(_conf_file)
    DEFAULT_CONFIG_PATH = _conf_file


class Settings(BaseSettings):
    DEBUG: bool = Field(
        False,
        description="Enable debug mode.",
    )

    TRACING_ENABLED: bool = Field(
        True,
        description="Enable OpenTelemetry tracing.",
    )

    BOT_ID: str = Field(DEFAULT_BOT_ID, description="Bot ID.")
    BOT_USER_AGENT: str = Field(
        "Mozilla/5.0 (compatible;)",
        description="User agent for page requests. Computed from package metadata and `BOT_ID` if not set.",
    )

    # Logging settings
    LOGGING_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO",
        description="Logging level.",
    )

    MAX_PAGES: int = Field(30, gt=0, description="Maximum number of pages merged from a single article.")
    REQUEST_TIMEOUT: float = Field(15.0, gt=0, description="Timeout (in seconds) for page requests.")
    REQUEST_RETRIES: int = Field(3, ge=0, description="Retries for page requests failing with a server error.")

    COOKIES: dict[str, str] = Field(
        default_factory=dict,
        description="Cookies sent with page requests to the article origin only, e.g. a subscription session.",
    )

    TOKEN_FILE: Path = Field(
        Path(user_config_dir("liima"), "readwise_token"),
        description="File where the Readwise access token is stored.",
    )

    readwise: ReadwiseSettings = Field(default_factory=ReadwiseSettings, description="Readwise Reader settings.")

    @model_validator(mode="before")
    @classmethod
    def _compute_user_agent(cls, values):
        """
        Compute the user-agent string.
        """
        if not isinstance(values, dict):
            return values
        bot_info = _pkg_metadata.copy()
        bot_info.setdefault("BOT_ID", values.get("BOT_ID", DEFAULT_BOT_ID))
        user_agent = "Mozilla/5.0 (compatible; {BOT_ID}/{Version}; +{Home-page})".format(**bot_info)
        values.setdefault("BOT_USER_AGENT", user_agent)
        return values

    @classmethod
    def settings_customise_sources(cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    model_config = SettingsConfigDict(
        yaml_file=_settings_file_location,
        yaml_file_encoding="utf-8",
        env_prefix="",
        env_nested_delimiter="__",
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',  # If dotenv contains extra keys, ignore them
    )


settings_var: ContextVar[Settings] = ContextVar(f"{__package__}.settings_var", default=Settings())
settings = settings_var.get()


def get_settings() -> Settings:
    """
    Settings effective in the current context.
    """
    return settings_var.get()
