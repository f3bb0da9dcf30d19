"""Legendre elliptic integrals with scipy

Reference backend for the JAX Carlson implementation. K, E and the incomplete
integrals of the first and second kind come from the Cephes routines in
scipy.special. The complete integral of the third kind uses Bulirsch's cel
iteration, and the incomplete one adaptive quadrature.

These functions are not differentiable with JAX.
"""

import logging
import warnings

import numpy as np
from scipy.integrate import quad
from scipy.special import ellipe, ellipeinc, ellipk, ellipkinc

from ellint.algorithm import EllipticAlgorithm
from ellint.errors import ConvergenceError, DomainError

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 32
"""Cap on the number of cel (Landen) steps"""
CEL_TOLERANCE = np.sqrt(np.finfo(float).eps)
"""Relative tolerance of cel, the error is of order CEL_TOLERANCE**2"""
QUAD_EPSABS = 1e-13
QUAD_EPSREL = 1e-12


def _check_parameter(m):
    if np.any(np.asarray(m) > 1.0):
        raise DomainError(f"parameter m must be <= 1, got {m}")


def _check_characteristic(n):
    if np.any(np.asarray(n) > 1.0):
        raise DomainError(f"characteristic n must be <= 1, got {n}")


def cel(kc: float, p: float, a: float, b: float) -> float:
    r"""Bulirsch's general complete elliptic integral

    $$ cel(k_c, p, a, b) = \int_0^{\pi/2}
        \frac{a \cos^2\theta + b \sin^2\theta}
        {(\cos^2\theta + p \sin^2\theta) \sqrt{\cos^2\theta + k_c^2 \sin^2\theta}}
        d\theta $$

    Numerical Recipes in C, 2nd ed., section 6.11. Only the case p > 0 is
    implemented, which covers Pi(n, m) = cel(sqrt(1 - m), 1 - n, 1, 1) for n < 1.

    Args:
        kc: Complementary modulus (kc != 0)
        p: Must be positive
        a: Numerator coefficient of cos^2
        b: Numerator coefficient of sin^2

    Raises:
        ConvergenceError: if the iteration does not converge in MAX_ITERATIONS
    """
    if kc == 0.0:
        raise DomainError("cel needs kc != 0")
    if p <= 0.0:
        raise DomainError("cel is only implemented for p > 0")
    qc = abs(kc)
    e = qc
    em = 1.0
    p = np.sqrt(p)
    b /= p
    for i in range(MAX_ITERATIONS):
        f = a
        a += b / p
        g = e / p
        b += f * g
        b += b
        p += g
        g = em
        em += qc
        if abs(g - qc) <= g * CEL_TOLERANCE:
            break
        qc = np.sqrt(e)
        qc += qc
        e = qc * em
    else:
        raise ConvergenceError(
            f"cel did not converge within {MAX_ITERATIONS} iterations"
        )
    logger.debug(f"cel(kc={kc}) converged after {i + 1} iterations")
    return np.pi / 2 * (b + a * em) / (em * (em + p))


def _ellippi(n: float, m: float) -> float:
    if n == 1.0 or m == 1.0:
        return np.inf
    return cel(np.sqrt(1 - m), 1 - n, 1.0, 1.0)


def _pi_integrand(theta, n, m):
    s2 = np.sin(theta) ** 2
    return 1 / ((1 - n * s2) * np.sqrt(1 - m * s2))


def _ellippiinc(n: float, phi: float, m: float) -> float:
    k = np.round(phi / np.pi)
    phir = phi - k * np.pi
    s2 = np.sin(phir) ** 2
    if n * s2 == 1.0 or m * s2 == 1.0:
        principal = np.copysign(np.inf, phir)
    else:
        principal, abserr = quad(
            _pi_integrand,
            0.0,
            phir,
            args=(n, m),
            epsabs=QUAD_EPSABS,
            epsrel=QUAD_EPSREL,
        )
        logger.debug(f"Pi({n}, {phir}, {m}) = {principal} +- {abserr}")
        if abserr > max(QUAD_EPSABS, QUAD_EPSREL * abs(principal)):
            warnings.warn(
                f"Quadrature error estimate {abserr} for Pi({n}, {phi}, {m}) "
                "exceeds the requested tolerance",
                stacklevel=2,
            )
    if k == 0.0:
        return principal
    return principal + 2 * k * _ellippi(n, m)


def ellippi(n, m):
    """Complete elliptic integral of the third kind Pi(n, m)

    Args:
        n: Characteristic (n <= 1), Pi(1, m) = inf
        m: Parameter (m <= 1), Pi(n, 1) = inf
    """
    _check_characteristic(n)
    _check_parameter(m)
    return np.vectorize(_ellippi, otypes=[float])(n, m)[()]


def ellippiinc(n, phi, m):
    """Incomplete elliptic integral of the third kind Pi(n, phi, m)

    Args:
        n: Characteristic (n <= 1)
        phi: Amplitude (any real)
        m: Parameter (m <= 1)
    """
    _check_characteristic(n)
    _check_parameter(m)
    return np.vectorize(_ellippiinc, otypes=[float])(n, phi, m)[()]


class ScipyAlg(EllipticAlgorithm):
    """Cephes, Bulirsch and quadrature algorithms from scipy"""

    name = "scipy"

    def ellipk(self, m):
        _check_parameter(m)
        return ellipk(m)

    def ellipe(self, m):
        _check_parameter(m)
        return ellipe(m)

    def ellippi(self, n, m):
        return ellippi(n, m)

    def ellipf(self, phi, m):
        _check_parameter(m)
        return ellipkinc(phi, m)

    def ellipeinc(self, phi, m):
        _check_parameter(m)
        return ellipeinc(phi, m)

    def ellippiinc(self, n, phi, m):
        return ellippiinc(n, phi, m)
