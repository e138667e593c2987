"""Connection options and logging setup."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from .errors import InvalidOptionError

logger = logging.getLogger(__name__)

# Environment variable -> option name
ENV_OPTIONS = {
    "MYSQL_HOST": "host",
    "MYSQL_USER": "user",
    "MYSQL_PASSWORD": "password",
    "MYSQL_DATABASE": "database",
    "MYSQL_PORT": "port",
    "MYSQL_SOCKET": "unix_socket",
    "MYSQL_CHARSET": "charset",
}


class ConnectionOptions(BaseModel):
    """Settings used to open a new MySQL connection."""
    model_config = ConfigDict(extra='forbid')  # Catch typos in option files

    host: str = "localhost"
    user: str = "root"
    password: str = ""
    database: str = "test"
    port: Optional[int] = None
    unix_socket: Optional[str] = None
    charset: str = "utf8"

    @field_validator('charset')
    @classmethod
    def validate_charset(cls, v):
        if not v.strip():
            raise ValueError("charset cannot be empty")
        return v.strip()

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if v is not None and not 0 < v < 65536:
            raise ValueError(f"Invalid port: {v}")
        return v

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for pymysql.connect(), without charset."""
        kwargs: Dict[str, Any] = {
            "host": self.host,
            "user": self.user,
            "password": self.password,
            "database": self.database,
        }
        if self.port is not None:
            kwargs["port"] = self.port
        if self.unix_socket:
            kwargs["unix_socket"] = self.unix_socket
        return kwargs


def load_options(path: Optional[str] = None) -> ConnectionOptions:
    """
    Load connection options from the environment and an optional YAML file.

    Loads from .env file if present, then from MYSQL_* environment variables.
    Values from the YAML file override environment values.

    Args:
        path: Optional YAML file containing a mapping of option names

    Returns:
        Validated ConnectionOptions

    Raises:
        InvalidOptionError: If the YAML document is not a mapping
        pydantic.ValidationError: If an option value is invalid
    """
    load_dotenv()

    values: Dict[str, Any] = {}
    for env_key, option in ENV_OPTIONS.items():
        value = os.getenv(env_key)
        if value is not None:
            values[option] = value

    if path is not None:
        with open(Path(path), 'r') as f:
            raw_data = yaml.safe_load(f)

        if raw_data is None:
            logger.warning(f"Empty options file: {path}")
        elif not isinstance(raw_data, dict):
            raise InvalidOptionError(f"Options file must contain a mapping: {path}")
        else:
            values.update(raw_data)

    options = ConnectionOptions(**values)
    logger.info(f"Connection options loaded for {options.user}@{options.host}/{options.database}")
    return options


def setup_logging(log_level: str = "INFO"):
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
