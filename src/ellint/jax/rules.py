r"""Closed-form partial derivatives of the Legendre elliptic integrals

The m-derivatives of F and E are Carlson integrals themselves,

$$ \partial_m F = \frac{1}{2} \int_0^\phi \frac{\sin^2\theta}{\Delta^3} d\theta
    = \frac{\sin^3\phi}{6} R_D(\cos^2\phi, 1, \Delta^2) $$
$$ \partial_m E = -\frac{1}{2} \int_0^\phi \frac{\sin^2\theta}{\Delta} d\theta
    = -\frac{\sin^3\phi}{6} R_D(\cos^2\phi, \Delta^2, 1) $$

with $\Delta^2 = 1 - m \sin^2\theta$, so nothing is divided by m.

The Pi rules take the integral values they need, so a caller that already
evaluated F, E or Pi (e.g. a custom JVP) only pays for the extra Carlson forms.
They divide by n - m and, for the incomplete dPi/dn, by n - 1. Within
SERIES_THRESHOLD of those points (measured in the expansion parameter) the
first two terms of the Taylor series in n - m or n - 1 are used instead.
The argument-only versions live in ellint.jax.derivatives.

References:
https://en.wikipedia.org/wiki/Elliptic_integral#Partial_derivatives
https://functions.wolfram.com/EllipticIntegrals/EllipticF/introductions/IncompleteEllipticIntegrals/ShowAll.html
https://dlmf.nist.gov/19.25
"""

import jax.numpy as jnp

from ellint.jax.amplitude import amplitude_args, periodic_term, reduce_amplitude
from ellint.jax.carlson import elliprd, elliprj
from ellint.jax.types import SFloat

SERIES_THRESHOLD = 1e-5
"""Size of (n - m) sin^2 / Delta^2 or (1 - n) tan^2 below which a series is used"""
SMALL_PARAMETER = 1e-4
"""|m| below which the n = m coefficients use their Maclaurin series in m"""

_HALF_PI = jnp.pi / 2


def _amplitude_terms(phi: SFloat) -> tuple[SFloat, SFloat]:
    """sin^2(phi), sin(phi) cos(phi)"""
    s = jnp.sin(phi)
    return s * s, s * jnp.cos(phi)


def _sin_power_integrals(
    phi: SFloat, s2: SFloat, sc: SFloat
) -> tuple[SFloat, SFloat, SFloat]:
    """Integrals of sin^2, sin^4 and sin^6 from 0 to phi"""
    I1 = (phi - sc) / 2
    I2 = (3 * I1 - s2 * sc) / 4
    I3 = (5 * I2 - s2 * s2 * sc) / 6
    return I1, I2, I3


def _equal_characteristic_integrals(
    phi: SFloat, s2: SFloat, sc: SFloat, m: SFloat, F: SFloat, E: SFloat
) -> tuple[SFloat, SFloat]:
    r"""Taylor coefficients of the Pi derivatives around n = m

    $$ J_1 = \int_0^\phi \sin^2\theta \Delta^{-5} d\theta, \quad
        J_2 = \int_0^\phi \sin^4\theta \Delta^{-7} d\theta $$

    With n = m + eps, dPi/dn = J_1 + 2 eps J_2 + O(eps^2) and
    dPi/dm = (J_1 + eps J_2)/2 + O(eps^2).

    Let $A_k = \int_0^\phi \Delta^{-k}$. Differentiating $\sin\cos / \Delta^k$
    gives $k (m-1) A_{k+2} = m sc / \Delta^k + (2-m)(1-k) A_k + (k-2) A_{k-2}$,
    starting from $A_{-1} = E$ and $A_1 = F$. Then $J_1 = (A_5 - A_3)/m$ and
    $J_2 = (A_7 - 2 A_5 + A_3)/m^2$, which cancel for small |m|, where the
    Maclaurin series in m takes over.
    """
    small = jnp.abs(m) < SMALL_PARAMETER
    msafe = jnp.where(small, 0.5, m)
    delta = jnp.sqrt(1 - msafe * s2)
    A3 = (E - msafe * sc / delta) / (1 - msafe)
    A5 = (msafe * sc / delta**3 - 2 * (2 - msafe) * A3 + F) / (3 * (msafe - 1))
    A7 = (msafe * sc / delta**5 - 4 * (2 - msafe) * A5 + 3 * A3) / (
        5 * (msafe - 1)
    )
    I1, I2, I3 = _sin_power_integrals(phi, s2, sc)
    J1 = jnp.where(small, I1 + 2.5 * m * I2 + 4.375 * m * m * I3, (A5 - A3) / msafe)
    J2 = jnp.where(small, I2 + 3.5 * m * I3, (A7 - 2 * A5 + A3) / msafe**2)
    return J1, J2


def _pole_integrals(
    s2: SFloat, sc: SFloat, m: SFloat, F: SFloat, E: SFloat
) -> tuple[SFloat, SFloat, SFloat]:
    r"""$P_b = \int_0^\phi \Delta^{-1} \cos^{-2b}\theta$ (b = 1, 2, 3), |phi| < pi/2

    P_1 is Pi(1, phi, m). Around n = 1, dPi/dn = (P_2 - P_1)
    + 2 (n - 1)(P_3 - 2 P_2 + P_1) + O((n - 1)^2).

    Differentiating $\sin\theta \Delta / \cos^{2b-1}\theta$ gives
    $(2b-1)(1-m) P_b = \sin\phi \Delta / \cos^{2b-1}\phi
    + 2(b-1)(1-2m) P_{b-1} + (2b-3) m P_{b-2}$
    with $P_0 = F$ and $m P_{-1} = E - (1-m) F$.
    """
    c2 = 1 - s2
    c2safe = jnp.where(c2 == 0.0, 1.0, c2)
    a = 1 - m
    # sin Delta / cos
    g = jnp.sqrt(1 - m * s2) * sc / c2safe
    P1 = F + (g - E) / a
    P2 = (g / c2safe + 2 * (1 - 2 * m) * P1 + m * F) / (3 * a)
    P3 = (g / c2safe**2 + 4 * (1 - 2 * m) * P2 + 3 * m * P1) / (5 * a)
    return P1, P2, P3


def _complete_pole_terms(n: SFloat, m: SFloat) -> tuple[SFloat, SFloat]:
    """(K - E)/m and (Pi - K)/n as Carlson forms"""
    zero, one = jnp.zeros_like(m), jnp.ones_like(m)
    munit = m == 1.0
    singular = (n == 1.0) | munit
    msafe = jnp.where(munit, 0.5, m)
    nsafe = jnp.where(singular, 0.5, n)
    D = elliprd(zero, 1 - msafe, one) / 3
    R = elliprj(zero, 1 - msafe, one, 1 - nsafe) / 3
    return jnp.where(munit, jnp.inf, D), jnp.where(singular, jnp.inf, R)


def _pole_terms(n: SFloat, phi: SFloat, m: SFloat) -> tuple[SFloat, SFloat]:
    r"""$\int_0^\phi \sin^2 / \Delta$ and $\int_0^\phi \sin^2 / (\Delta (1 - n \sin^2))$

    i.e. (F - E)/m and (Pi - F)/n without the cancellation at small m or n
    """
    phir, k = reduce_amplitude(phi)
    s, c, y = amplitude_args(phir, m)
    p = 1 - n * s * s
    yzero = y == 0.0
    singular = yzero | (p == 0.0)
    csafe = jnp.where(singular, 1.0, c)
    ysafe = jnp.where(singular, 1.0, y)
    psafe = jnp.where(singular, 1.0, p)
    one = jnp.ones_like(y)
    D = s**3 / 3 * elliprd(csafe, ysafe, one)
    R = s**3 / 3 * elliprj(csafe, ysafe, one, psafe)
    D = jnp.where(yzero, jnp.sign(s) * jnp.inf, D)
    R = jnp.where(singular, jnp.sign(s) * jnp.inf, R)
    Dc, Rc = _complete_pole_terms(n, m)
    return D + periodic_term(k, Dc), R + periodic_term(k, Rc)


def _dPi_dn(phi, s2, sc, k, n, m, F, E, D, R):
    eps = n - m
    near_m = jnp.abs(eps) < SERIES_THRESHOLD * (1 - m)
    # only the principal branch is finite at n = 1
    near_1 = jnp.logical_and(
        k == 0.0, jnp.abs(1 - n) < SERIES_THRESHOLD * (1 - s2)
    )
    p = 1 - n * s2
    psafe = jnp.where(p == 0.0, 1.0, p)
    den = jnp.where(near_m | near_1, 1.0, 2 * (m - n) * (n - 1))
    delta = jnp.sqrt(1 - m * s2)
    generic = (-m * D + n * F + (n * n - m) * R - n * delta * sc / psafe) / den

    J1, J2 = _equal_characteristic_integrals(phi, s2, sc, m, F, E)
    P1, P2, P3 = _pole_integrals(s2, sc, m, F, E)
    at_m = J1 + 2 * eps * J2
    at_1 = P2 - P1 + 2 * (n - 1) * (P3 - 2 * P2 + P1)
    return jnp.where(near_m, at_m, jnp.where(near_1, at_1, generic))


def _dPi_dm(phi, s2, sc, n, m, F, E, Pi):
    eps = n - m
    near_m = jnp.abs(eps) < SERIES_THRESHOLD * (1 - m)
    delta = jnp.sqrt(1 - m * s2)
    # integral of 1/Delta^3
    A3 = (E - m * sc / delta) / (1 - m)
    generic = (Pi - A3) / jnp.where(near_m, 1.0, 2 * eps)
    J1, J2 = _equal_characteristic_integrals(phi, s2, sc, m, F, E)
    return jnp.where(near_m, (J1 + eps * J2) / 2, generic)


def dK_dm(m: SFloat) -> SFloat:
    """dK/dm = E/(2m(1-m)) - K/(2m) = R_D(0, 1, 1-m)/6

    pi/8 at m = 0, +inf at m = 1
    """
    unit = m == 1.0
    msafe = jnp.where(unit, 0.5, m)
    dK = elliprd(jnp.zeros_like(msafe), jnp.ones_like(msafe), 1 - msafe) / 6
    return jnp.where(unit, jnp.inf, dK)


def dE_dm(m: SFloat) -> SFloat:
    """dE/dm = (E - K)/(2m) = -R_D(0, 1-m, 1)/6

    -pi/8 at m = 0, -inf at m = 1
    """
    unit = m == 1.0
    msafe = jnp.where(unit, 0.5, m)
    dE = -elliprd(jnp.zeros_like(msafe), 1 - msafe, jnp.ones_like(msafe)) / 6
    return jnp.where(unit, -jnp.inf, dE)


def dPi_dn(n: SFloat, m: SFloat, K: SFloat, E: SFloat) -> SFloat:
    """dPi/dn = (E + (m-n)K/n + (n^2-m)Pi/n) / (2(m-n)(n-1))

    +inf at n = 1 or m = 1
    """
    D, R = _complete_pole_terms(n, m)
    return jnp.where(
        (n == 1.0) | (m == 1.0),
        jnp.inf,
        _dPi_dn(_HALF_PI, 1.0, 0.0, 0.0, n, m, K, E, D, R),
    )


def dPi_dm(n: SFloat, m: SFloat, K: SFloat, E: SFloat, Pi: SFloat) -> SFloat:
    """dPi/dm = (E/(m-1) + Pi) / (2(n-m))

    +inf at n = 1 or m = 1
    """
    return jnp.where(
        (n == 1.0) | (m == 1.0),
        jnp.inf,
        _dPi_dm(_HALF_PI, 1.0, 0.0, n, m, K, E, Pi),
    )


def dF_dphi(phi: SFloat, m: SFloat) -> SFloat:
    """dF/dphi = 1/sqrt(1 - m sin^2 phi)"""
    s2, _ = _amplitude_terms(phi)
    return 1 / jnp.sqrt(1 - m * s2)


def dF_dm(phi: SFloat, m: SFloat) -> SFloat:
    """dF/dm = E/(2m(1-m)) - F/(2m) - sin(2phi)/(4(1-m)sqrt(1 - m sin^2 phi))"""
    phir, k = reduce_amplitude(phi)
    s, c, y = amplitude_args(phir, m)
    singular = y == 0.0
    ysafe = jnp.where(singular, 1.0, y)
    dF = s**3 / 6 * elliprd(c, jnp.ones_like(y), ysafe)
    dF = jnp.where(singular, jnp.sign(s) * jnp.inf, dF)
    return dF + periodic_term(k, dK_dm(m))


def dEinc_dphi(phi: SFloat, m: SFloat) -> SFloat:
    """dE(phi, m)/dphi = sqrt(1 - m sin^2 phi)"""
    s2, _ = _amplitude_terms(phi)
    return jnp.sqrt(1 - m * s2)


def dEinc_dm(phi: SFloat, m: SFloat) -> SFloat:
    """dE(phi, m)/dm = (E - F)/(2m)"""
    phir, k = reduce_amplitude(phi)
    s, c, y = amplitude_args(phir, m)
    singular = y == 0.0
    csafe = jnp.where(singular, 1.0, c)
    ysafe = jnp.where(singular, 1.0, y)
    dE = -(s**3) / 6 * elliprd(csafe, ysafe, jnp.ones_like(y))
    dE = jnp.where(singular, -jnp.sign(s) * jnp.inf, dE)
    return dE + periodic_term(k, dE_dm(m))


def dPiinc_dn(n: SFloat, phi: SFloat, m: SFloat, F: SFloat, E: SFloat) -> SFloat:
    """dPi(n, phi, m)/dn

    (E + (m-n)F/n + (n^2-m)Pi/n - n Delta sin(2phi)/(2(1 - n sin^2 phi)))
    / (2(m-n)(n-1)), with Delta = sqrt(1 - m sin^2 phi)
    """
    _, k = reduce_amplitude(phi)
    s2, sc = _amplitude_terms(phi)
    D, R = _pole_terms(n, phi, m)
    dPi = _dPi_dn(phi, s2, sc, k, n, m, F, E, D, R)
    # outside the principal branch the pole at n = 1 is not removable
    return jnp.where((n == 1.0) & (k != 0.0), jnp.sign(k) * jnp.inf, dPi)


def dPiinc_dphi(n: SFloat, phi: SFloat, m: SFloat) -> SFloat:
    """dPi(n, phi, m)/dphi = 1/(sqrt(1 - m sin^2 phi)(1 - n sin^2 phi))"""
    s2, _ = _amplitude_terms(phi)
    return 1 / (jnp.sqrt(1 - m * s2) * (1 - n * s2))


def dPiinc_dm(
    n: SFloat, phi: SFloat, m: SFloat, F: SFloat, E: SFloat, Pi: SFloat
) -> SFloat:
    """dPi(n, phi, m)/dm

    (E/(m-1) + Pi - m sin(2phi)/(2(m-1)sqrt(1 - m sin^2 phi))) / (2(n-m))
    """
    s2, sc = _amplitude_terms(phi)
    return _dPi_dm(phi, s2, sc, n, m, F, E, Pi)
