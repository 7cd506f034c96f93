"""Configuration source for the mask erosion scheduler.

This module provides the key/value parameter store read by the registration
components, together with command-line style overrides (``-fMask``, ``-mMask``).
Parameters are loaded from a YAML file with a top-level ``registration`` key.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional
import logging

import yaml

logger = logging.getLogger(__name__)

DEFAULT_NUMBER_OF_RESOLUTIONS = 3


def strict_int(value: Any) -> int:
    """Convert a parameter value to int, rejecting booleans and fractional floats."""
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer, got boolean {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Expected an integer, got {value!r}")
    return int(value)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class Configuration:
    """Parameter store plus command-line arguments.

    Attributes:
        parameters: Mapping from parameter name (e.g. ``NumberOfResolutions``) to
            a scalar value or a list with one value per resolution level.
        command_line: Mapping from command-line flag (e.g. ``-fMask``) to its value.
    """
    parameters: Dict[str, Any] = field(default_factory=dict)
    command_line: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate command-line keys and normalize values to strings."""
        if self.parameters is None:
            self.parameters = {}
        if not isinstance(self.parameters, dict):
            raise ConfigurationError(
                f"parameters must be a mapping, got {type(self.parameters).__name__}"
            )

        normalized: Dict[str, str] = {}
        for key, value in (self.command_line or {}).items():
            if not isinstance(key, str) or not key.startswith("-"):
                raise ConfigurationError(
                    f"Command line keys must start with '-', got {key!r}"
                )
            normalized[key] = "" if value is None else str(value)
        self.command_line = normalized

    def get_command_line_argument(self, key: str) -> str:
        """Return the value of a command-line argument, or "" if it was not given."""
        return self.command_line.get(key, "")

    def read_parameter(
        self,
        key: str,
        default: Any,
        index: int = 0,
        cast: Callable[[Any], Any] = strict_int,
    ) -> Any:
        """Read a parameter, falling back to ``default``.

        Absent parameters silently yield the default. Values that cannot be
        converted with ``cast``, or lists shorter than ``index + 1``, yield the
        default with a warning. This method never raises.

        Args:
            key: Parameter name
            default: Value returned when the parameter is absent or unusable
            index: Element to use when the parameter holds one value per level
            cast: Conversion applied to the raw value

        Returns:
            The converted parameter value or ``default``
        """
        if key not in self.parameters:
            logger.debug(f"Parameter {key} not found, using default: {default}")
            return default

        raw = self.parameters[key]
        if isinstance(raw, (list, tuple)):
            if not 0 <= index < len(raw):
                logger.warning(
                    f"Parameter {key} has no entry {index} ({len(raw)} given), "
                    f"using default: {default}"
                )
                return default
            raw = raw[index]

        try:
            return cast(raw)
        except (TypeError, ValueError):
            logger.warning(
                f"Could not parse parameter {key}={raw!r}, using default: {default}"
            )
            return default


def load_configuration(
    config_path: Path,
    command_line: Optional[Dict[str, str]] = None,
) -> Configuration:
    """Load the registration parameter file from YAML.

    Args:
        config_path: Path to the YAML configuration file
        command_line: Command-line arguments to attach to the configuration

    Returns:
        Configuration holding the ``registration`` parameters

    Raises:
        FileNotFoundError: If config file does not exist
        ConfigurationError: If the file is empty, malformed or lacks the
            ``registration`` top-level key
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading registration config from {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML: {e}") from e

    if not yaml_data:
        raise ConfigurationError("Configuration file is empty")

    if not isinstance(yaml_data, dict) or "registration" not in yaml_data:
        raise ConfigurationError(
            "Configuration must contain 'registration' top-level key"
        )

    config = Configuration(
        parameters=yaml_data["registration"] or {},
        command_line=command_line or {},
    )

    logger.info("Registration configuration loaded successfully")
    return config
