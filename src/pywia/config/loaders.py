"""Configuration file loaders for JSON and TOML formats."""

import json
import tomllib
from pathlib import Path
from typing import Any

from .._logging import logger
from .models import Settings


class ConfigLoader:
    """Load :class:`Settings` from configuration files.

    Supports JSON and TOML. Sections missing from a file keep their defaults.

    Examples:
        settings = ConfigLoader.from_json("wia.json")
        settings = ConfigLoader.from_toml("wia.toml")

        # Pick the parser from the extension
        settings = ConfigLoader.from_file("wia.toml")

    A TOML file looks like::

        [ensemble]
        mode = "scale"

        [filter]
        enabled = true
        window = 15
        poly_order = 3
    """

    @staticmethod
    def _build(data: dict[str, Any], path: Path) -> Settings:
        settings = Settings(**data)
        logger.debug(f"Loaded settings from {path}")
        return settings

    @staticmethod
    def from_json(path: str | Path) -> Settings:
        """Load settings from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            json.JSONDecodeError: If the file is not valid JSON
            pydantic.ValidationError: If the content doesn't match the schema
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return ConfigLoader._build(data, path)

    @staticmethod
    def from_toml(path: str | Path) -> Settings:
        """Load settings from a TOML file.

        Raises:
            FileNotFoundError: If the file does not exist
            tomllib.TOMLDecodeError: If the file is not valid TOML
            pydantic.ValidationError: If the content doesn't match the schema
        """
        path = Path(path)
        with path.open("rb") as f:
            data = tomllib.load(f)
        return ConfigLoader._build(data, path)

    @staticmethod
    def from_file(path: str | Path) -> Settings:
        """Load settings, choosing the format from the file extension.

        Args:
            path: Path to a .json or .toml file

        Raises:
            ValueError: If the extension is neither .json nor .toml
        """
        path = Path(path)
        suffix = path.suffix.lower()
        if suffix == ".json":
            return ConfigLoader.from_json(path)
        elif suffix == ".toml":
            return ConfigLoader.from_toml(path)
        else:
            raise ValueError(
                f"Unsupported config file format: {path.suffix}. "
                "Only .json and .toml are supported."
            )
