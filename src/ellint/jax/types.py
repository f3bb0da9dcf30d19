"""Helpers for JAX types

All integrals are written for scalar arguments and batched with jax.vmap
"""

import jax.numpy as jnp
from jax import Array
from jaxtyping import Bool, Float, Int

SFloat = Float[Array, ""] | float
"""Scalar (double-precision) floating point"""
SBool = Bool[Array, ""] | bool
"""Scalar boolean, e.g. a domain check predicate"""
SInt = Int[Array, ""]
"""Scalar integer, e.g. an iteration counter"""


def as_float(*args: SFloat | int) -> tuple[Float[Array, ""], ...]:
    """Promote python scalars (including ints) to double-precision arrays"""
    return tuple(jnp.asarray(arg, dtype=float) for arg in args)
