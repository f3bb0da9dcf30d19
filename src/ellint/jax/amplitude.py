"""Amplitude reduction shared by the incomplete integrals and their derivatives

An amplitude phi is split as phi = phir + k pi with phir in [-pi/2, pi/2].
Every incomplete integral I (and each of its partial derivatives) then obeys
I(phi) = I(phir) + 2 k I_complete.
"""

import jax.numpy as jnp

from ellint.jax.types import SFloat


def reduce_amplitude(phi: SFloat) -> tuple[SFloat, SFloat]:
    """Split phi = phir + k pi with phir in [-pi/2, pi/2]"""
    k = jnp.round(phi / jnp.pi)
    return phi - k * jnp.pi, k


def periodic_term(k: SFloat, complete: SFloat) -> SFloat:
    # k == 0 must not pick up inf * 0 from a singular complete integral
    return jnp.where(k == 0.0, 0.0, 2 * k * complete)


def amplitude_args(phir: SFloat, m: SFloat) -> tuple[SFloat, SFloat, SFloat]:
    """sin(phi), cos^2(phi), 1 - m sin^2(phi)"""
    s = jnp.sin(phir)
    return s, jnp.cos(phir) ** 2, 1 - m * s * s
