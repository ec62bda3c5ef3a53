"""Exception taxonomy and recoverable-violation policy helpers."""

from __future__ import annotations

import logging


class StowageError(Exception):
    """Base class for all engine errors."""


class ShapeError(StowageError, ValueError):
    """Malformed shape input rejected at construction."""


class ContractViolation(StowageError, RuntimeError):
    """Caller broke a per-frame contract and strict mode is enabled."""


class ContentsInUseError(StowageError, ValueError):
    """Contents tree is already attached to another container."""


class UnknownContentsError(StowageError, KeyError):
    """Lookup of a contents or container id that was never registered."""


class UnsupportedContentsOperation(StowageError, NotImplementedError):
    """Operation is not defined for this contents kind."""


def report_violation(
    logger: logging.Logger,
    message: str,
    *args: object,
    strict: bool = False,
) -> None:
    """Log a recoverable contract violation, or raise it in strict mode."""
    if strict:
        raise ContractViolation(message % args if args else message)
    logger.warning("contract_violation " + message, *args)


def log_recoverable(
    logger: logging.Logger,
    message: str,
    *args: object,
    level: int = logging.WARNING,
) -> None:
    """Emit observability for a tolerated inconsistency that is not a violation."""
    logger.log(level, message, *args)
