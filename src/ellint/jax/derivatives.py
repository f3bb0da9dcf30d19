"""Partial derivatives of the Legendre elliptic integrals

Convenience wrappers around ellint.jax.rules that evaluate the integrals the
rules need. They agree with jax.grad of the corresponding integral, which uses
the same rules through its custom JVP.
"""

from ellint.jax import legendre, rules
from ellint.jax.checks import check_characteristic, check_parameter
from ellint.jax.types import SFloat, as_float


def dK_dm(m: SFloat) -> SFloat:
    """dK/dm, pi/8 at m = 0 and +inf at m = 1"""
    (m,) = as_float(m)
    return rules.dK_dm(check_parameter(m))


def dE_dm(m: SFloat) -> SFloat:
    """dE/dm, -pi/8 at m = 0"""
    (m,) = as_float(m)
    return rules.dE_dm(check_parameter(m))


def dPi_dn(n: SFloat, m: SFloat) -> SFloat:
    """dPi(n, m)/dn, finite at n = 0 and n = m"""
    n, m = as_float(n, m)
    K, E = legendre.ellipk(m), legendre.ellipe(m)
    return rules.dPi_dn(check_characteristic(n), m, K, E)


def dPi_dm(n: SFloat, m: SFloat) -> SFloat:
    """dPi(n, m)/dm"""
    n, m = as_float(n, m)
    K, E, Pi = legendre.ellipk(m), legendre.ellipe(m), legendre.ellippi(n, m)
    return rules.dPi_dm(n, m, K, E, Pi)


def dF_dphi(phi: SFloat, m: SFloat) -> SFloat:
    phi, m = as_float(phi, m)
    return rules.dF_dphi(phi, m)


def dF_dm(phi: SFloat, m: SFloat) -> SFloat:
    phi, m = as_float(phi, m)
    return rules.dF_dm(phi, check_parameter(m))


def dEinc_dphi(phi: SFloat, m: SFloat) -> SFloat:
    phi, m = as_float(phi, m)
    return rules.dEinc_dphi(phi, m)


def dEinc_dm(phi: SFloat, m: SFloat) -> SFloat:
    phi, m = as_float(phi, m)
    return rules.dEinc_dm(phi, check_parameter(m))


def dPiinc_dn(n: SFloat, phi: SFloat, m: SFloat) -> SFloat:
    """dPi(n, phi, m)/dn

    Finite at n = 0, n = m and n = 1 (for |phi| < pi/2), where the general
    expression is 0/0
    """
    n, phi, m = as_float(n, phi, m)
    F, E = legendre.ellipf(phi, m), legendre.ellipeinc(phi, m)
    return rules.dPiinc_dn(check_characteristic(n), phi, m, F, E)


def dPiinc_dphi(n: SFloat, phi: SFloat, m: SFloat) -> SFloat:
    n, phi, m = as_float(n, phi, m)
    return rules.dPiinc_dphi(n, phi, m)


def dPiinc_dm(n: SFloat, phi: SFloat, m: SFloat) -> SFloat:
    """dPi(n, phi, m)/dm, finite at n = m"""
    n, phi, m = as_float(n, phi, m)
    F, E = legendre.ellipf(phi, m), legendre.ellipeinc(phi, m)
    Pi = legendre.ellippiinc(n, phi, m)
    return rules.dPiinc_dm(n, phi, m, F, E, Pi)
