"""
stock_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains an
    ``EngineConfig``.  Engines and services receive the config explicitly and
    never read files or environment variables themselves.

Audit relevance:
    Every successful call emits a ``STOCK_CONFIG_TRACE`` log entry with the
    source path and the checksum of the effective configuration, tying each
    classification run to the thresholds that produced it.
"""

from __future__ import annotations

from pathlib import Path

from stock_config.loader import compute_checksum, load_yaml_file, parse_engine_config
from stock_config.schema import AgingBracket, EngineConfig
from stock_kernel.logging_config import get_logger

__all__ = ["AgingBracket", "EngineConfig", "get_active_config", "DEFAULT_CONFIG_PATH"]

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> EngineConfig:
    """Load, validate and trace the engine configuration.

    Args:
        path: YAML file to load.  Defaults to the packaged defaults.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a key is unknown or a value fails validation.
    """
    source = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_engine_config(load_yaml_file(source))
    checksum = compute_checksum(config.as_dict())

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "source": str(source),
            "checksum": checksum,
            "currency": config.currency,
            "default_cost_method": config.default_cost_method,
            "movement_window_days": config.movement_window_days,
        },
    )
    return config
