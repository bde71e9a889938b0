"""
Resync pipeline configuration.

Values come from explicit arguments, a mapping of overrides, or SYNC_* environment
variables (loaded from .env by common_utils.load_env when used from scripts).
"""

import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Optional, Union

from core.constants.exceptions import ConfigurationException
from core.sync.retry import RetryConfig


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SyncConfig:
    """
    Synchronization configuration

    Attributes:
        save_on_synchronize: Save every successfully indexed record back to MongoDB
        concurrency: Maximum number of records processed at the same time
        batch_size: MongoDB cursor batch size
        preserve_order: Emit outcomes in cursor order (otherwise in completion order)
        operation_timeout: Timeout (seconds) of one index or save attempt
        pull_timeout: Timeout (seconds) of pulling the next record from the cursor
        refresh_on_close: Refresh the search index before the stream closes
        retry_config: Retry policy of index submissions
    """

    save_on_synchronize: bool = True
    concurrency: int = 1
    batch_size: int = 500
    preserve_order: bool = True
    operation_timeout: float = 30.0
    pull_timeout: float = 60.0
    refresh_on_close: bool = False
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    def __post_init__(self):
        if self.concurrency < 1:
            raise ConfigurationException("must be >= 1", config_key="concurrency")
        if self.batch_size < 1:
            raise ConfigurationException("must be >= 1", config_key="batch_size")
        if self.operation_timeout <= 0:
            raise ConfigurationException("must be > 0", config_key="operation_timeout")
        if self.pull_timeout <= 0:
            raise ConfigurationException("must be > 0", config_key="pull_timeout")

    @classmethod
    def from_env(cls, prefix: str = "SYNC") -> 'SyncConfig':
        """
        Create configuration from environment variables, e.g. SYNC_CONCURRENCY.
        Unset variables keep the defaults.
        """

        def _env(name: str) -> Optional[str]:
            return os.getenv(f"{prefix}_{name}")

        values: dict[str, Any] = {}
        try:
            if (raw := _env("SAVE_ON_SYNCHRONIZE")) is not None:
                values["save_on_synchronize"] = _env_bool(raw)
            if (raw := _env("PRESERVE_ORDER")) is not None:
                values["preserve_order"] = _env_bool(raw)
            if (raw := _env("REFRESH_ON_CLOSE")) is not None:
                values["refresh_on_close"] = _env_bool(raw)
            if (raw := _env("CONCURRENCY")) is not None:
                values["concurrency"] = int(raw)
            if (raw := _env("BATCH_SIZE")) is not None:
                values["batch_size"] = int(raw)
            if (raw := _env("OPERATION_TIMEOUT")) is not None:
                values["operation_timeout"] = float(raw)
            if (raw := _env("PULL_TIMEOUT")) is not None:
                values["pull_timeout"] = float(raw)

            max_retries = _env("MAX_RETRIES")
            retry_delay = _env("RETRY_DELAY")
            if max_retries is not None or retry_delay is not None:
                defaults = RetryConfig()
                values["retry_config"] = RetryConfig(
                    max_retries=(
                        int(max_retries) if max_retries is not None else defaults.max_retries
                    ),
                    retry_delay=(
                        float(retry_delay) if retry_delay is not None else defaults.retry_delay
                    ),
                )
        except ValueError as e:
            raise ConfigurationException(
                f"invalid {prefix}_* environment value: {e}"
            ) from e

        return cls(**values)

    @classmethod
    def coerce(
        cls, config: Union['SyncConfig', Mapping[str, Any], None]
    ) -> 'SyncConfig':
        """
        Normalize the `config` argument of synchronize()

        Accepts a SyncConfig, a mapping of field overrides applied on top of the
        defaults, or None.
        """
        if config is None:
            return cls()
        if isinstance(config, cls):
            return config
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ConfigurationException(
                f"unknown option(s): {', '.join(sorted(unknown))}"
            )
        return replace(cls(), **dict(config))
