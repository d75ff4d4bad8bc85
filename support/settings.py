"""
Service configuration
---------------------
Settings are read from the environment, optionally seeded from a dotenv file.

Environment Variables:
    - AMQP_URI: Broker connection URI (amqp://, amqps://, redis://, rediss://, unix://). Required.
    - AMQP_EXCHANGE_NAME: Exchange the updates are published to. Required.
    - AMQP_ROUTING_KEY: Routing key for job updates (default: jobs.updates)
    - LISTEN_HOST / LISTEN_PORT: HTTP bind address (default: 0.0.0.0:60000)
    - PUBLISH_TIMEOUT / RECONNECT_TIMEOUT: Broker timeouts in seconds
    - LOG_LEVEL / LOG_FILE_PATH: Logging configuration
"""
import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from support.constants import (
    DEFAULT_LISTEN_HOST,
    DEFAULT_LISTEN_PORT,
    DEFAULT_PUBLISH_TIMEOUT,
    DEFAULT_RECONNECT_TIMEOUT,
    LOG_FILE_PATH,
    UPDATES_ROUTING_KEY,
)
from support.errors import ConfigurationError


class ServiceSettings(BaseModel):
    """Explicit configuration value handed to the publisher and the server."""
    amqp_uri: str = Field(min_length=1)
    exchange_name: str = Field(min_length=1)
    routing_key: str = UPDATES_ROUTING_KEY
    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = Field(default=DEFAULT_LISTEN_PORT, ge=1, le=65535)
    publish_timeout: float = Field(default=DEFAULT_PUBLISH_TIMEOUT, gt=0)
    reconnect_timeout: float = Field(default=DEFAULT_RECONNECT_TIMEOUT, gt=0)
    log_level: str = "INFO"
    log_file_path: Optional[str] = LOG_FILE_PATH

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level {value!r}")
        return value

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


# Environment variable -> ServiceSettings field
_ENV_FIELDS = {
    "AMQP_URI": "amqp_uri",
    "AMQP_EXCHANGE_NAME": "exchange_name",
    "AMQP_ROUTING_KEY": "routing_key",
    "LISTEN_HOST": "listen_host",
    "LISTEN_PORT": "listen_port",
    "PUBLISH_TIMEOUT": "publish_timeout",
    "RECONNECT_TIMEOUT": "reconnect_timeout",
    "LOG_LEVEL": "log_level",
    "LOG_FILE_PATH": "log_file_path",
}
_REQUIRED_ENV = ("AMQP_URI", "AMQP_EXCHANGE_NAME")


def load_settings(env_file: Optional[str] = None) -> ServiceSettings:
    """
    Build ServiceSettings from the environment.

    :param env_file: Optional dotenv file. When given it must exist; values already set in
        the process environment take precedence over the file.
    :return: Validated settings.
    :raises ConfigurationError: If the file is missing or a value is missing or invalid.
    """
    if env_file is not None:
        if not os.path.isfile(env_file):
            raise ConfigurationError(f"configuration file not found: {env_file}")
        load_dotenv(env_file)
    else:
        load_dotenv()

    raw = {}
    for env_name, field_name in _ENV_FIELDS.items():
        value = os.getenv(env_name)
        if value is not None and value != "":
            raw[field_name] = value

    missing = [env for env in _REQUIRED_ENV if _ENV_FIELDS[env] not in raw]
    if missing:
        raise ConfigurationError(
            "missing required configuration: " + ", ".join(missing)
        )

    try:
        return ServiceSettings(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e
