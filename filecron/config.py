"""
Configuration management for filecron.
Loads and manages configuration from a YAML file.
"""

import os
import logging
import yaml
from dataclasses import dataclass, asdict, fields
from typing import Optional


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class Config:
    """Configuration for the filecron daemon."""

    spool_dir: str = "/var/spool/incron"
    allow_file: str = "/etc/incron.allow"
    deny_file: str = "/etc/incron.deny"
    pid_file: str = "/var/run/filecron.pid"
    log_file: Optional[str] = None
    log_level: str = "INFO"
    syslog: bool = False
    poll_interval: float = 1.0

    def __post_init__(self):
        """Validate configuration"""
        for name in ('spool_dir', 'allow_file', 'deny_file', 'pid_file'):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string")
        if self.log_file is not None and not isinstance(self.log_file, str):
            raise ValueError("log_file must be a string")
        if not self.spool_dir:
            raise ValueError("Table directory cannot be empty")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}. Must be one of {LOG_LEVELS}")
        self.log_level = self.log_level.upper()
        if not isinstance(self.syslog, bool):
            raise ValueError("syslog must be true or false")
        # bool is an int subclass but never a valid interval
        if isinstance(self.poll_interval, bool) or not isinstance(self.poll_interval, (int, float)):
            raise ValueError(f"Invalid poll_interval: {self.poll_interval!r}")
        if self.poll_interval <= 0:
            raise ValueError("Poll interval must be positive")

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level)

    @classmethod
    def load(cls, config_path: str) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Configuration file must contain a YAML dictionary")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        for key in ('spool_dir', 'allow_file', 'deny_file', 'pid_file', 'log_file'):
            if isinstance(data.get(key), str):
                data[key] = os.path.expanduser(os.path.expandvars(data[key]))

        return cls(**data)

    @classmethod
    def load_or_default(cls, config_path: str) -> "Config":
        """
        Load configuration from file, or return default if file doesn't exist.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded or default settings
        """
        try:
            return cls.load(config_path)
        except FileNotFoundError:
            return cls()

    def save(self, config_path: str) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to the configuration file
        """
        directory = os.path.dirname(config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(config_path, 'w') as f:
            yaml.safe_dump(asdict(self), f, default_flow_style=False, sort_keys=False)
