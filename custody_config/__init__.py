"""
custody_config -- single public entrypoint for custody configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a validated, frozen ``CustodyConfig``.

Architecture position:
    Configuration -- YAML-driven, validated before use.  This package sits
    above ``custody_kernel``.  The kernel MUST NEVER import from
    ``custody_config``; ``custody_config.bridges`` translates configuration
    into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ValueError`` -- validation failures, all listed in the message.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CUSTODY_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum and the main parameters.  This ties each ledger instance to
    the exact configuration version it was built from.
"""

from __future__ import annotations

from pathlib import Path

from custody_config.loader import load_config_file
from custody_config.schema import CustodyConfig, LimitsConfig, TokenConfig, VaultConfig
from custody_config.validator import ValidationResult, validate_configuration
from custody_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

__all__ = [
    "get_active_config",
    "CustodyConfig",
    "TokenConfig",
    "VaultConfig",
    "LimitsConfig",
    "ValidationResult",
    "validate_configuration",
]


def get_active_config(
    config_name: str = "default",
    config_dir: Path | None = None,
) -> CustodyConfig:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned ``CustodyConfig`` has passed validation.
        - A ``CUSTODY_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Args:
        config_name: Name of the set; loads ``<config_dir>/<config_name>.yaml``.
        config_dir: Override path to configuration sets directory.
            Defaults to custody_config/sets/.

    Raises:
        FileNotFoundError: If no matching configuration set is found.
        ValueError: If configuration validation fails.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{config_name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set '{config_name}' not found in {sets_dir}")

    config = load_config_file(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"warning": warning})

    _logger.info(
        "CUSTODY_CONFIG_TRACE",
        extra={
            "trace_type": "CUSTODY_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "token_symbol": config.token.symbol,
            "max_batch_size": config.token.max_batch_size,
            "amount_bits": config.limits.amount_bits,
        },
    )

    return config
