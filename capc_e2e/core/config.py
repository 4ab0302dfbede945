"""E2E configuration loading: template variables and named wait intervals."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from capc_e2e.constants import DEFAULT_INTERVALS_SCOPE
from capc_e2e.core.models import PollBudget
from capc_e2e.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: Any) -> float:
    """Parse a Go-style duration into seconds.

    Parameters
    ----------
    value : Any
        Duration such as ``"10m"``, ``"1h30m"``, ``"500ms"``, or a bare
        number of seconds

    Returns
    -------
    float
        Duration in seconds

    Raises
    ------
    ConfigurationError
        If the value is not a valid non-negative duration
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigurationError(f"Duration must be non-negative: {value!r}")
        return float(value)

    text = str(value).strip()
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if seconds < 0:
            raise ConfigurationError(f"Duration must be non-negative: {value!r}")
        return seconds

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ConfigurationError(f"Invalid duration: {value!r}")

    return total


@dataclass
class E2EConfig:
    """Loaded E2E configuration.

    Attributes
    ----------
    variables : dict[str, str]
        Template and scenario variables
    intervals : dict[str, list[str]]
        Interval table keyed by ``"<spec>/<key>"``; each entry is
        ``[deadline, interval]``
    source : Path | None
        File the configuration was loaded from
    """

    variables: dict[str, str] = field(default_factory=dict)
    intervals: dict[str, list[Any]] = field(default_factory=dict)
    source: Path | None = None

    def has_variable(self, name: str) -> bool:
        return name in os.environ or name in self.variables

    def get_variable(self, name: str) -> str:
        """Look up a variable, letting the environment override the file.

        Parameters
        ----------
        name : str
            Variable name

        Returns
        -------
        str
            Variable value

        Raises
        ------
        ConfigurationError
            If the variable is defined neither in the environment nor in the file
        """
        if name in os.environ:
            return os.environ[name]

        if name not in self.variables:
            raise ConfigurationError(
                f"Variable '{name}' not found in E2E config"
                + (f" {self.source}" if self.source else "")
            )

        return str(self.variables[name])

    def has_intervals(self, spec_name: str, key: str) -> bool:
        return (
            f"{spec_name}/{key}" in self.intervals
            or f"{DEFAULT_INTERVALS_SCOPE}/{key}" in self.intervals
        )

    def get_intervals(self, spec_name: str, key: str) -> PollBudget:
        """Resolve the named wait budget for a scenario.

        Looks up ``"<spec_name>/<key>"`` first and falls back to
        ``"default/<key>"``.

        Parameters
        ----------
        spec_name : str
            Scenario name
        key : str
            Interval key (e.g. "wait-errors")

        Returns
        -------
        PollBudget
            Parsed deadline and tick interval

        Raises
        ------
        ConfigurationError
            If neither entry exists or the entry is malformed
        """
        spec_key = f"{spec_name}/{key}"
        default_key = f"{DEFAULT_INTERVALS_SCOPE}/{key}"

        if spec_key in self.intervals:
            entry = self.intervals[spec_key]
        elif default_key in self.intervals:
            entry = self.intervals[default_key]
        else:
            raise ConfigurationError(
                f"No intervals found for '{spec_key}' or '{default_key}'"
            )

        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise ConfigurationError(
                f"Intervals for '{spec_key}' must be [deadline, interval], got {entry!r}"
            )

        deadline = parse_duration(entry[0])
        interval = parse_duration(entry[1])

        if interval <= 0:
            raise ConfigurationError(f"Polling interval for '{spec_key}' must be positive")

        return PollBudget(scenario_name=spec_name, deadline=deadline, interval=interval)


class E2EConfigLoader:
    """Load the clusterctl-style E2E configuration YAML."""

    def load(self, config_path: str | Path | None = None) -> E2EConfig:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | Path | None
            Path to the E2E config file. If None, reads CAPC_E2E_CONFIG.

        Returns
        -------
        E2EConfig
            Configuration with all interpolations resolved

        Raises
        ------
        ConfigurationError
            If the file is missing, unreadable, not valid YAML, or has
            unresolvable interpolations
        """
        if config_path is None:
            config_path = os.environ.get("CAPC_E2E_CONFIG")

        if not config_path:
            raise ConfigurationError("No E2E config given and CAPC_E2E_CONFIG is not set")

        config_file = Path(config_path)

        if not config_file.is_file():
            raise ConfigurationError(f"E2E config file not found: {config_file}")

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse E2E config file %s: %s", config_file, e)
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read E2E config file %s: %s", config_file, e)
            raise ConfigurationError(f"Failed to read E2E config file {config_file}: {e}") from e

        if cfg is None:
            return E2EConfig(source=config_file)

        try:
            data = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve E2E config variables: %s", e)
            raise ConfigurationError(f"Configuration variable resolution error: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"E2E config {config_file} must be a mapping")

        variables = data.get("variables") or {}
        intervals = data.get("intervals") or {}

        if not isinstance(variables, dict) or not isinstance(intervals, dict):
            raise ConfigurationError(
                f"'variables' and 'intervals' in {config_file} must be mappings"
            )

        logger.debug(
            "Loaded E2E config %s: %d variables, %d intervals",
            config_file,
            len(variables),
            len(intervals),
        )

        return E2EConfig(
            variables={str(k): str(v) for k, v in variables.items()},
            intervals={str(k): v for k, v in intervals.items()},
            source=config_file,
        )
