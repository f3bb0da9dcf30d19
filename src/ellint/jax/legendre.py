"""Legendre elliptic integrals in terms of Carlson symmetric forms

https://dlmf.nist.gov/19.25
https://en.wikipedia.org/wiki/Carlson_symmetric_form#Incomplete_elliptic_integrals

Conventions follow scipy: the parameter is m = k^2 and the characteristic n
enters as 1 - n sin^2(phi). Amplitudes outside [-pi/2, pi/2] are reduced with
phi = phir + k pi, using F(phi, m) = F(phir, m) + 2 k K(m) (and likewise for E
and Pi).

Every integral has a custom JVP built from the closed-form partial derivatives
in ellint.jax.rules, so autodiff never goes through the duplication loops.
"""

import jax
import jax.numpy as jnp

from ellint.algorithm import EllipticAlgorithm
from ellint.jax import rules
from ellint.jax.amplitude import amplitude_args, periodic_term, reduce_amplitude
from ellint.jax.carlson import (
    elliprd,
    elliprd_one_zero,
    elliprf,
    elliprf_one_zero,
    elliprj,
)
from ellint.jax.checks import check_characteristic, check_parameter
from ellint.jax.types import SFloat, as_float


@jax.custom_jvp
def _ellipk(m: SFloat) -> SFloat:
    singular = m == 1.0
    msafe = jnp.where(singular, 0.5, m)
    K = elliprf_one_zero(1 - msafe, jnp.ones_like(m))
    return jnp.where(singular, jnp.inf, K)


@_ellipk.defjvp
def _ellipk_fwd(primals, tangents):
    (m,) = primals
    (dm,) = tangents
    return _ellipk(m), rules.dK_dm(m) * dm


@jax.custom_jvp
def _ellipe(m: SFloat) -> SFloat:
    one = jnp.ones_like(m)
    singular = m == 1.0
    msafe = jnp.where(singular, 0.5, m)
    y = 1 - msafe
    E = elliprf_one_zero(y, one) - msafe / 3 * elliprd_one_zero(y, one)
    return jnp.where(singular, one, E)


@_ellipe.defjvp
def _ellipe_fwd(primals, tangents):
    (m,) = primals
    (dm,) = tangents
    return _ellipe(m), rules.dE_dm(m) * dm


@jax.custom_jvp
def _ellippi(n: SFloat, m: SFloat) -> SFloat:
    singular = (n == 1.0) | (m == 1.0)
    nsafe = jnp.where(singular, 0.5, n)
    msafe = jnp.where(singular, 0.5, m)
    one = jnp.ones_like(m)
    y = 1 - msafe
    Pi = elliprf_one_zero(y, one) + nsafe / 3 * elliprj(
        jnp.zeros_like(m), y, one, 1 - nsafe
    )
    return jnp.where(singular, jnp.inf, Pi)


@_ellippi.defjvp
def _ellippi_fwd(primals, tangents):
    n, m = primals
    dn, dm = tangents
    K = _ellipk(m)
    E = _ellipe(m)
    Pi = _ellippi(n, m)
    dPi = rules.dPi_dn(n, m, K, E) * dn + rules.dPi_dm(n, m, K, E, Pi) * dm
    return Pi, dPi


@jax.custom_jvp
def _ellipf(phi: SFloat, m: SFloat) -> SFloat:
    phir, k = reduce_amplitude(phi)
    s, c, y = amplitude_args(phir, m)
    # only at phi = +-pi/2 with m = 1
    singular = y == 0.0
    csafe = jnp.where(singular, 1.0, c)
    F = s * elliprf(csafe, y, jnp.ones_like(y))
    F = jnp.where(singular, jnp.sign(s) * jnp.inf, F)
    return F + periodic_term(k, _ellipk(m))


@_ellipf.defjvp
def _ellipf_fwd(primals, tangents):
    phi, m = primals
    dphi, dm = tangents
    dF = rules.dF_dphi(phi, m) * dphi + rules.dF_dm(phi, m) * dm
    return _ellipf(phi, m), dF


@jax.custom_jvp
def _ellipeinc(phi: SFloat, m: SFloat) -> SFloat:
    phir, k = reduce_amplitude(phi)
    unit = m == 1.0
    msafe = jnp.where(unit, 0.5, m)
    s, c, y = amplitude_args(phir, msafe)
    one = jnp.ones_like(y)
    E = s * elliprf(c, y, one) - msafe * s**3 / 3 * elliprd(c, y, one)
    # E(phi, 1) = sin(phi) on the principal branch
    E = jnp.where(unit, s, E)
    return E + periodic_term(k, _ellipe(m))


@_ellipeinc.defjvp
def _ellipeinc_fwd(primals, tangents):
    phi, m = primals
    dphi, dm = tangents
    dE = rules.dEinc_dphi(phi, m) * dphi + rules.dEinc_dm(phi, m) * dm
    return _ellipeinc(phi, m), dE


@jax.custom_jvp
def _ellippiinc(n: SFloat, phi: SFloat, m: SFloat) -> SFloat:
    phir, k = reduce_amplitude(phi)
    s, c, y = amplitude_args(phir, m)
    p = 1 - n * s * s
    singular = (p == 0.0) | (y == 0.0)
    csafe = jnp.where(singular, 1.0, c)
    ysafe = jnp.where(singular, 1.0, y)
    psafe = jnp.where(singular, 1.0, p)
    one = jnp.ones_like(y)
    Pi = s * elliprf(csafe, ysafe, one) + n * s**3 / 3 * elliprj(
        csafe, ysafe, one, psafe
    )
    Pi = jnp.where(singular, jnp.sign(s) * jnp.inf, Pi)
    return Pi + periodic_term(k, _ellippi(n, m))


@_ellippiinc.defjvp
def _ellippiinc_fwd(primals, tangents):
    n, phi, m = primals
    dn, dphi, dm = tangents
    F = _ellipf(phi, m)
    E = _ellipeinc(phi, m)
    Pi = _ellippiinc(n, phi, m)
    dPi = (
        rules.dPiinc_dn(n, phi, m, F, E) * dn
        + rules.dPiinc_dphi(n, phi, m) * dphi
        + rules.dPiinc_dm(n, phi, m, F, E, Pi) * dm
    )
    return Pi, dPi


def ellipk(m: SFloat) -> SFloat:
    r"""Complete elliptic integral of the first kind

    $$ K(m) = \int_0^{\pi/2} \frac{d\theta}{\sqrt{1 - m \sin^2\theta}}
        = R_F(0, 1-m, 1) $$

    Args:
        m: Parameter (m <= 1), K(1) = inf

    Raises:
        DomainError: if m > 1
    """
    (m,) = as_float(m)
    return _ellipk(check_parameter(m))


def ellipe(m: SFloat) -> SFloat:
    r"""Complete elliptic integral of the second kind

    $$ E(m) = \int_0^{\pi/2} \sqrt{1 - m \sin^2\theta} d\theta $$

    Args:
        m: Parameter (m <= 1), E(1) = 1
    """
    (m,) = as_float(m)
    return _ellipe(check_parameter(m))


def ellippi(n: SFloat, m: SFloat) -> SFloat:
    r"""Complete elliptic integral of the third kind

    $$ \Pi(n, m) = \int_0^{\pi/2}
        \frac{d\theta}{(1 - n \sin^2\theta) \sqrt{1 - m \sin^2\theta}} $$

    Args:
        n: Characteristic (n <= 1), Pi(1, m) = inf
        m: Parameter (m <= 1), Pi(n, 1) = inf
    """
    n, m = as_float(n, m)
    return _ellippi(check_characteristic(n), check_parameter(m))


def ellipf(phi: SFloat, m: SFloat) -> SFloat:
    r"""Incomplete elliptic integral of the first kind

    $$ F(\phi, m) = \int_0^\phi \frac{d\theta}{\sqrt{1 - m \sin^2\theta}} $$

    Args:
        phi: Amplitude (any real)
        m: Parameter (m <= 1)

    F(+-pi/2, 1) is +-inf
    """
    phi, m = as_float(phi, m)
    return _ellipf(phi, check_parameter(m))


def ellipeinc(phi: SFloat, m: SFloat) -> SFloat:
    r"""Incomplete elliptic integral of the second kind

    $$ E(\phi, m) = \int_0^\phi \sqrt{1 - m \sin^2\theta} d\theta $$

    Args:
        phi: Amplitude (any real)
        m: Parameter (m <= 1)
    """
    phi, m = as_float(phi, m)
    return _ellipeinc(phi, check_parameter(m))


def ellippiinc(n: SFloat, phi: SFloat, m: SFloat) -> SFloat:
    r"""Incomplete elliptic integral of the third kind

    $$ \Pi(n, \phi, m) = \int_0^\phi
        \frac{d\theta}{(1 - n \sin^2\theta) \sqrt{1 - m \sin^2\theta}} $$

    Args:
        n: Characteristic (n <= 1)
        phi: Amplitude (any real)
        m: Parameter (m <= 1)

    Pi(1, +-pi/2, m) is +-inf
    """
    n, phi, m = as_float(n, phi, m)
    return _ellippiinc(check_characteristic(n), phi, check_parameter(m))


class CarlsonAlg(EllipticAlgorithm):
    """Carlson symmetric-form algorithms, differentiable and jit-compatible"""

    name = "carlson"

    def ellipk(self, m):
        return ellipk(m)

    def ellipe(self, m):
        return ellipe(m)

    def ellippi(self, n, m):
        return ellippi(n, m)

    def ellipf(self, phi, m):
        return ellipf(phi, m)

    def ellipeinc(self, phi, m):
        return ellipeinc(phi, m)

    def ellippiinc(self, n, phi, m):
        return ellippiinc(n, phi, m)


CARLSON = CarlsonAlg()
K = CARLSON.K
E = CARLSON.E
F = CARLSON.F
Pi = CARLSON.Pi
