"""
Configuration Validator (``custody_config.validator``).

Responsibility
--------------
Validates a ``CustodyConfig`` before any ledger is built from it.

Invariants enforced
-------------------
* Identity -- ``config_id`` is non-empty and ``version`` is a positive int.
* Amount width -- ``amount_bits`` is a multiple of 8 in ``[8, 256]``.
* Token -- name and symbol are non-empty, ``decimals`` fits in a byte,
  ``initial_supply`` fits in the amount width, ``max_batch_size`` >= 1.
* Ledger ids -- the token and vault ids are non-empty and distinct, so
  their audit chains never mix in a shared sink.

Failure modes
-------------
* Validation errors (``ValidationResult.errors``)  -> configuration MUST
  NOT be used.
* Validation warnings (``ValidationResult.warnings``)  -> configuration
  may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from custody_config.schema import CustodyConfig


@dataclass
class ValidationResult:
    """
    Result of configuration validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_configuration(config: CustodyConfig) -> ValidationResult:
    """
    Validate a configuration set.

    Postconditions:
        - Returns a ``ValidationResult`` with every error and warning found.
    """
    result = ValidationResult()

    _validate_identity(config, result)
    _validate_limits(config, result)
    _validate_token(config, result)
    _validate_ledger_ids(config, result)

    return result


def _validate_identity(config: CustodyConfig, result: ValidationResult) -> None:
    if not config.config_id:
        result.add_error("config_id must not be empty")
    if not _is_int(config.version) or config.version < 1:
        result.add_error(f"version must be a positive integer, got {config.version!r}")


def _validate_limits(config: CustodyConfig, result: ValidationResult) -> None:
    bits = config.limits.amount_bits
    if not _is_int(bits) or not 8 <= bits <= 256 or bits % 8:
        result.add_error(
            f"limits.amount_bits must be a multiple of 8 between 8 and 256, got {bits!r}"
        )


def _validate_token(config: CustodyConfig, result: ValidationResult) -> None:
    token = config.token
    if not token.name:
        result.add_error("token.name must not be empty")
    if not token.symbol:
        result.add_error("token.symbol must not be empty")
    if not _is_int(token.decimals) or not 0 <= token.decimals <= 255:
        result.add_error(f"token.decimals must be between 0 and 255, got {token.decimals!r}")
    if not _is_int(token.max_batch_size) or token.max_batch_size < 1:
        result.add_error(
            f"token.max_batch_size must be a positive integer, got {token.max_batch_size!r}"
        )

    supply = token.initial_supply
    if not _is_int(supply) or supply < 0:
        result.add_error(f"token.initial_supply must be a non-negative integer, got {supply!r}")
    elif _is_int(config.limits.amount_bits) and supply > config.limits.max_amount:
        result.add_error(
            f"token.initial_supply {supply} exceeds the {config.limits.amount_bits}-bit amount limit"
        )
    elif supply == 0:
        result.add_warning("token.initial_supply is 0; only minters can create units")


def _validate_ledger_ids(config: CustodyConfig, result: ValidationResult) -> None:
    if not config.token.ledger_id:
        result.add_error("token.ledger_id must not be empty")
    if not config.vault.vault_id:
        result.add_error("vault.vault_id must not be empty")
    if config.token.ledger_id and config.token.ledger_id == config.vault.vault_id:
        result.add_error(
            f"token.ledger_id and vault.vault_id must differ, both are {config.vault.vault_id!r}"
        )
