"""Domain and convergence checks that work both eagerly and under tracing"""

import logging
from typing import TypeVar

import equinox as eqx
import jax
import jax.numpy as jnp
from jax import Array

from ellint.errors import DomainError, EllipticError
from ellint.jax.types import SBool, SFloat

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Array)


def error_if(x: T, pred: SBool, error: type[EllipticError], msg: str) -> T:
    """Raise ``error`` if ``pred`` holds, otherwise return ``x`` unchanged

    With concrete inputs the exception is raised immediately. Under jit or vmap
    the predicate is only known at runtime, so the check is handed to
    ``equinox.error_if``, which raises a RuntimeError carrying the same message.

    Args:
        x: Value to pass through (attaches the runtime check to the graph)
        pred: Failure condition
        error: Exception class to raise eagerly
        msg: Description of the failure
    """
    try:
        failed = bool(jnp.any(pred))
    except jax.errors.ConcretizationTypeError:
        logger.debug(f"Deferring {error.__name__} check to runtime: {msg}")
        return eqx.error_if(x, pred, f"{error.__name__}: {msg}")
    if failed:
        raise error(msg)
    return x


def check_parameter(m: SFloat) -> SFloat:
    return error_if(m, m > 1.0, DomainError, "parameter m must be <= 1")


def check_characteristic(n: SFloat) -> SFloat:
    return error_if(n, n > 1.0, DomainError, "characteristic n must be <= 1")
