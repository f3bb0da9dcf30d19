"""Carlson symmetric elliptic integrals

References:
https://github.com/sinaatalay/jaxellip
https://github.com/tagordon/ellip
https://github.com/boostorg/math/blob/develop/include/boost/math/special_functions/ellint_rf.hpp
https://github.com/boostorg/math/blob/develop/include/boost/math/special_functions/ellint_rd.hpp
https://github.com/boostorg/math/blob/develop/include/boost/math/special_functions/ellint_rj.hpp

Carlson "Numerical computation of real or complex elliptic integrals"
https://arxiv.org/abs/math/9409227

Every duplication (or AGM) loop is capped at MAX_ITERATIONS steps. A loop that
stops on the cap rather than on its tolerance raises ConvergenceError.
"""

from typing import TypeAlias

import jax
import jax.numpy as jnp
from jax import lax

from ellint.errors import ConvergenceError, DomainError
from ellint.jax.checks import error_if
from ellint.jax.types import SBool, SFloat, SInt, as_float

MAX_ITERATIONS = 32
"""Cap on the number of duplication or AGM steps"""


def _check_converged(value: SFloat, converged: SBool, name: str) -> SFloat:
    return error_if(
        value,
        ~converged,
        ConvergenceError,
        f"{name} did not converge within {MAX_ITERATIONS} iterations",
    )


_RFState: TypeAlias = tuple[SFloat, SFloat, SFloat, SFloat, SFloat, SFloat, SInt]
"""x, y, z, A, Q, f, n"""


@jax.custom_jvp
def _elliprf_full_iter(x: SFloat, y: SFloat, z: SFloat) -> SFloat:
    """Iterative solution for non-special cases"""

    def cond_fun(state: _RFState):
        _, _, _, A, Q, _, n = state
        return (Q >= jnp.abs(A)) & (n < MAX_ITERATIONS)

    def body_fun(state: _RFState) -> _RFState:
        x, y, z, A, Q, f, n = state
        sqrtx = jnp.sqrt(x)
        sqrty = jnp.sqrt(y)
        sqrtz = jnp.sqrt(z)
        lam = sqrtx * sqrty + sqrtx * sqrtz + sqrty * sqrtz
        return (
            (x + lam) / 4,
            (y + lam) / 4,
            (z + lam) / 4,
            (A + lam) / 4,
            Q / 4,
            f * 4,
            n + 1,
        )

    A0 = (x + y + z) / 3
    Q = jnp.pow(3 * jnp.finfo(x.dtype).eps, -1 / 8) * jnp.max(
        jnp.array([jnp.abs(A0 - x), jnp.abs(A0 - y), jnp.abs(A0 - z)])
    )
    f = jnp.ones_like(x)
    n0 = jnp.array(0, dtype=jnp.int32)

    _, _, _, A_final, Q_final, f_final, _ = lax.while_loop(
        cond_fun, body_fun, (x, y, z, A0, Q, f, n0)
    )

    X = (A0 - x) / (A_final * f_final)
    Y = (A0 - y) / (A_final * f_final)
    Z = -(X + Y)

    E2 = X * Y - Z * Z
    E3 = X * Y * Z

    result = (
        1.0
        + E3 * (1.0 / 14 + 3 * E3 / 104)
        + E2 * (-1.0 / 10 + E2 / 24 - (3 * E3) / 44 - 5 * E2 * E2 / 208 + E2 * E3 / 16)
    ) / jnp.sqrt(A_final)
    return _check_converged(result, Q_final < jnp.abs(A_final), "R_F duplication")


@_elliprf_full_iter.defjvp
def _elliprf_full_iter_fwd(primals, tangents):
    x, y, z = primals
    dx, dy, dz = tangents
    rf = _elliprf_full_iter(x, y, z)

    # dR_F/dx = -R_D(y, z, x) / 6 and permutations
    drf_dx = -_elliprd_general_iter(y, z, x) / 6
    drf_dy = -_elliprd_general_iter(x, z, y) / 6
    drf_dz = -_elliprd_general_iter(x, y, z) / 6

    drf = drf_dx * dx + drf_dy * dy + drf_dz * dz
    return rf, drf


_AGMState: TypeAlias = tuple[SFloat, SFloat, SInt]
"""a, b, n"""


@jax.custom_jvp
def _elliprf_one_zero_iter(x: SFloat, y: SFloat) -> SFloat:
    """Solution for the case where one argument is zero (arithmetic-geometric mean)"""
    tol = 2.7 * jnp.sqrt(jnp.finfo(x.dtype).eps)

    def cond_fn(state: _AGMState):
        a, b, n = state
        return (jnp.abs(a - b) >= tol * jnp.abs(a)) & (n < MAX_ITERATIONS)

    def body_fn(state: _AGMState) -> _AGMState:
        a, b, n = state
        return (a + b) / 2, jnp.sqrt(a * b), n + 1

    n0 = jnp.array(0, dtype=jnp.int32)
    a_final, b_final, _ = lax.while_loop(
        cond_fn, body_fn, (jnp.sqrt(x), jnp.sqrt(y), n0)
    )
    result = jnp.pi / (a_final + b_final)
    converged = jnp.abs(a_final - b_final) < tol * jnp.abs(a_final)
    return _check_converged(result, converged, "R_F arithmetic-geometric mean")


@_elliprf_one_zero_iter.defjvp
def _elliprf_one_zero_iter_fwd(primals, tangents):
    x, y = primals
    dx, dy = tangents
    rf = _elliprf_one_zero_iter(x, y)

    drf_dx = -_elliprd_one_zero_impl(y, x) / 6
    drf_dy = -_elliprd_one_zero_impl(x, y) / 6

    drf = drf_dx * dx + drf_dy * dy
    return rf, drf


def elliprf_one_zero(x: SFloat, y: SFloat) -> SFloat:
    """Special case of Carlson R_F where one argument is zero

    Args:
        x: Real argument (x > 0)
        y: Real argument (y > 0)

    Returns:
        R_F(x, y, 0)

    Implementation notes:
    Originally we selected pi/2/sqrt(x) when x == y, but this seems
    to cause trouble for autograd.
    """
    x, y = as_float(x, y)
    x = error_if(x, (x <= 0.0) | (y <= 0.0), DomainError, "R_F(x, y, 0) needs x, y > 0")
    return _elliprf_one_zero_iter(x, y)


def elliprf(x: SFloat, y: SFloat, z: SFloat) -> SFloat:
    r"""Carlson symmetric elliptic integral of the first kind

    $$ R_F(x, y, z) = \frac{1}{2} \int_0^\infty \frac{dt}{\sqrt{(t+x)(t+y)(t+z)}} $$

    Args:
        x: Real argument (x >= 0)
        y: Real argument (y >= 0)
        z: Real argument (z >= 0)

    At most one of x, y, z can be zero.

    Returns:
        R_F(x, y, z)

    Implementation notes:
    Originally we selected elliprc when x == y or y == z,
    but this seems to cause trouble for autograd, and the iterative
    method gives the same result in those cases
    """
    x, y, z = as_float(x, y, z)
    lo, me, hi = jnp.sort(jnp.array([x, y, z]))
    lo = error_if(lo, lo < 0.0, DomainError, "R_F arguments must be non-negative")
    me = error_if(me, me == 0.0, DomainError, "R_F allows at most one zero argument")
    losafe = jnp.where(lo == 0.0, 1e-16, lo)
    mesafe = jnp.where(me == 0.0, 1.0, me)
    return jnp.where(
        lo == 0.0,
        _elliprf_one_zero_iter(mesafe, hi),
        _elliprf_full_iter(losafe, mesafe, hi),
    )


_RDState: TypeAlias = tuple[
    SFloat, SFloat, SFloat, SFloat, SFloat, SFloat, SFloat, SInt
]
"""x, y, z, A, Q, sum_term, f, n"""


def _elliprd_general_iter(x: SFloat, y: SFloat, z: SFloat) -> SFloat:
    """General iterative solution for RD"""

    def cond_fun(state: _RDState):
        _, _, _, A, Q, _, _, n = state
        return (Q >= A) & (n < MAX_ITERATIONS)

    def body_fun(state: _RDState) -> _RDState:
        x, y, z, A, Q, sum_term, f, n = state
        sqrtx = jnp.sqrt(x)
        sqrty = jnp.sqrt(y)
        sqrtz = jnp.sqrt(z)
        lam = sqrtx * sqrty + sqrtx * sqrtz + sqrty * sqrtz
        sum_term_new = sum_term + f / (sqrtz * (z + lam))
        return (
            (x + lam) / 4,
            (y + lam) / 4,
            (z + lam) / 4,
            (A + lam) / 4,
            Q / 4,
            sum_term_new,
            f / 4,
            n + 1,
        )

    A0 = (x + y + 3 * z) / 5
    Q = (
        jnp.pow(jnp.finfo(x.dtype).eps / 4, -1 / 8)
        * jnp.max(jnp.array([jnp.abs(A0 - x), jnp.abs(A0 - y), jnp.abs(A0 - z)]))
        * 1.2
    )
    f = jnp.ones_like(x)
    sum_term = jnp.zeros_like(x)
    n0 = jnp.array(0, dtype=jnp.int32)

    _, _, _, A_final, Q_final, sum_final, f_final, _ = lax.while_loop(
        cond_fun, body_fun, (x, y, z, A0, Q, sum_term, f, n0)
    )

    X = f_final * (A0 - x) / A_final
    Y = f_final * (A0 - y) / A_final
    Z = -(X + Y) / 3

    E2 = X * Y - 6 * Z * Z
    E3 = (3 * X * Y - 8 * Z * Z) * Z
    E4 = 3 * (X * Y - Z * Z) * Z * Z
    E5 = X * Y * Z * Z * Z

    result = 3 * sum_final + f_final * jnp.pow(A_final, -3 / 2) * _rd_rj_series(
        E2, E3, E4, E5
    )
    return _check_converged(result, Q_final < A_final, "R_D duplication")


def _rd_rj_series(E2: SFloat, E3: SFloat, E4: SFloat, E5: SFloat) -> SFloat:
    """Taylor correction shared by R_D and R_J, in the elementary symmetric functions"""
    return (
        1
        - 3 * E2 / 14
        + E3 / 6
        + 9 * E2 * E2 / 88
        - 3 * E4 / 22
        - 9 * E2 * E3 / 52
        + 3 * E5 / 26
        - E2 * E2 * E2 / 16
        + 3 * E3 * E3 / 40
        + 3 * E2 * E4 / 20
        + 45 * E2 * E2 * E3 / 272
        - 9 * (E3 * E4 + E2 * E5) / 68
    )


_RD0State: TypeAlias = tuple[SFloat, SFloat, SFloat, SFloat, SInt]
"""a, b, sum_term, sum_pow, n"""


def _elliprd_one_zero_iter(y: SFloat, z: SFloat) -> SFloat:
    """Iterative solution for RD when one argument is zero"""
    x0 = jnp.sqrt(y)
    y0 = jnp.sqrt(z)
    sum_term = jnp.zeros_like(y)
    sum_pow = jnp.full_like(y, 0.25)
    n0 = jnp.array(0, dtype=jnp.int32)
    tol = 2.7 * jnp.finfo(y.dtype).eps

    def cond_fn(state: _RD0State):
        an, bn, _, _, n = state
        return (jnp.abs(an - bn) >= tol * jnp.abs(an)) & (n < MAX_ITERATIONS)

    def body_fn(state: _RD0State) -> _RD0State:
        an, bn, sum_term, sum_pow, n = state
        a_new = (an + bn) / 2
        b_new = jnp.sqrt(an * bn)
        sum_pow_new = sum_pow * 2
        tmp = a_new - b_new
        sum_term_new = sum_term + sum_pow_new * tmp * tmp
        return a_new, b_new, sum_term_new, sum_pow_new, n + 1

    a_final, b_final, sum_final, _, _ = lax.while_loop(
        cond_fn, body_fn, (x0, y0, sum_term, sum_pow, n0)
    )

    rf = jnp.pi / (a_final + b_final)
    pt = (x0 + 3 * y0) / (4 * z * (x0 + y0))
    pt = pt - sum_final / (z * (y - z))
    converged = jnp.abs(a_final - b_final) < tol * jnp.abs(a_final)
    return _check_converged(pt * rf * 3, converged, "R_D arithmetic-geometric mean")


def _elliprd_one_zero_impl(y: SFloat, z: SFloat) -> SFloat:
    # guard against nan for y == z in the second branch
    ysafe = jnp.where(y == z, y + z, y)
    return jnp.where(
        y == z,
        3 * jnp.pi / (4 * y * jnp.sqrt(y)),
        _elliprd_one_zero_iter(ysafe, z),
    )


def elliprd_one_zero(y: SFloat, z: SFloat) -> SFloat:
    """Special case of Carlson R_D where one argument is zero

    Args:
        y: Real argument (y > 0)
        z: Real argument (z > 0)

    Returns:
        R_D(0, y, z)
    """
    y, z = as_float(y, z)
    y = error_if(y, (y <= 0.0) | (z <= 0.0), DomainError, "R_D(0, y, z) needs y, z > 0")
    return _elliprd_one_zero_impl(y, z)


def elliprd(x: SFloat, y: SFloat, z: SFloat) -> SFloat:
    r"""Carlson symmetric elliptic integral of the second kind

    $$ R_D(x, y, z) = \frac{3}{2} \int_0^\infty \frac{dt}{(t+z) \sqrt{(t+x)(t+y)(t+z)}} $$

    Args:
        x: Real argument (x >= 0)
        y: Real argument (y >= 0)
        z: Real argument (z > 0)

    At most one of x, y can be zero.

    Returns:
        R_D(x, y, z)
    """
    x, y, z = as_float(x, y, z)
    lo, hi = jnp.minimum(x, y), jnp.maximum(x, y)
    lo = error_if(lo, lo < 0.0, DomainError, "R_D arguments must be non-negative")
    z = error_if(z, z <= 0.0, DomainError, "R_D needs z > 0")
    hi = error_if(
        hi, hi == 0.0, DomainError, "R_D allows at most one of x, y to be zero"
    )
    hisafe = jnp.where(hi == 0.0, 1.0, hi)
    return jnp.where(
        lo == 0.0,
        _elliprd_one_zero_impl(hisafe, z),
        _elliprd_general_iter(x, y, z),
    )


def _elliprc(x: SFloat, y: SFloat) -> SFloat:
    # y > x: atan(sqrt((y-x)/x)) / sqrt(y-x), y < x: asinh(sqrt((x-y)/y)) / sqrt(x-y)
    d = y - x
    equal = d == 0.0
    root = jnp.sqrt(jnp.where(equal, 1.0, jnp.abs(d)))
    xsafe = jnp.where(x == 0.0, 1.0, x)
    ratio = jnp.where(d > 0.0, root / jnp.sqrt(xsafe), root / jnp.sqrt(y))
    general = jnp.where(d > 0.0, jnp.atan(ratio), jnp.asinh(ratio)) / root
    return jnp.where(
        equal,
        1.0 / jnp.sqrt(y),
        jnp.where(x == 0.0, jnp.pi / (2 * root), general),
    )


def elliprc(x: SFloat, y: SFloat) -> SFloat:
    r"""Carlson's degenerate elliptic integral R_C

    $$ R_C(x, y) = \frac{1}{2} \int_0^\infty \frac{dt}{\sqrt{t+x}(t+y)} $$

    Note: $R_C(x, y) = R_F(x, y, y)$, evaluated here in closed form

    This routine does not handle the singular case y < 0 (Cauchy principal value)

    Args:
        x: Real argument (x >= 0)
        y: Real argument (y > 0)

    Returns:
        R_C(x, y)
    """
    x, y = as_float(x, y)
    x = error_if(x, x < 0.0, DomainError, "R_C needs x >= 0")
    y = error_if(y, y <= 0.0, DomainError, "R_C needs y > 0")
    return _elliprc(x, y)


def _elliprc1p(x: SFloat) -> SFloat:
    zero = x == 0.0
    root = jnp.sqrt(jnp.where(zero, 1.0, jnp.abs(x)))
    ratio = root / jnp.sqrt(jnp.where(x > -1.0, jnp.minimum(1.0, 1.0 + x), 1.0))
    rc = jnp.where(x > 0.0, jnp.atan(ratio), jnp.asinh(ratio)) / root
    return jnp.where(zero, jnp.ones_like(x), rc)


def elliprc1p(x: SFloat) -> SFloat:
    """R_C(1, 1+x) special case

    Args:
        x: Real argument (x > -1)
    """
    (x,) = as_float(x)
    x = error_if(x, x <= -1.0, DomainError, "R_C(1, 1+x) needs x > -1")
    return _elliprc1p(x)


_RJState: TypeAlias = tuple[
    SFloat, SFloat, SFloat, SFloat, SFloat, SFloat, SFloat, SFloat, SInt
]
"""x, y, z, p, A, delta, fmn, sum_term, n"""


def _elliprj_iter(x: SFloat, y: SFloat, z: SFloat, p: SFloat) -> SFloat:
    An0 = (x + y + z + 2 * p) / 5
    delta0 = (p - x) * (p - y) * (p - z)
    Q = jnp.pow(jnp.finfo(x.dtype).eps / 5, -1 / 8) * jnp.max(
        jnp.array(
            [jnp.abs(An0 - x), jnp.abs(An0 - y), jnp.abs(An0 - z), jnp.abs(An0 - p)]
        )
    )

    def cond_fun(state: _RJState):
        _, _, _, _, An, _, fmn, _, n = state
        return (fmn * Q >= An) & (n < MAX_ITERATIONS)

    def body_fun(state: _RJState) -> _RJState:
        xn, yn, zn, pn, An, delta, fmn, sum_term, n = state
        rx = jnp.sqrt(xn)
        ry = jnp.sqrt(yn)
        rz = jnp.sqrt(zn)
        rp = jnp.sqrt(pn)
        Dn = (rp + rx) * (rp + ry) * (rp + rz)
        En = (delta / Dn) / Dn
        sum_term_new = jnp.where(
            (En > -1.5) & (En < -0.5),
            sum_term
            + fmn
            / Dn
            * _elliprc(jnp.ones_like(x), 2 * rp * (pn + rx * (ry + rz) + ry * rz) / Dn),
            sum_term + fmn / Dn * _elliprc1p(En),
        )
        lam = rx * ry + rx * rz + ry * rz

        # break happens here in boost, but an extra iteration of these vars is OK
        return (
            (xn + lam) / 4,
            (yn + lam) / 4,
            (zn + lam) / 4,
            (pn + lam) / 4,
            (An + lam) / 4,
            delta / 64,
            fmn / 4,
            sum_term_new,
            n + 1,
        )

    fmn0 = jnp.ones_like(x)
    sum_term0 = jnp.zeros_like(x)
    n0 = jnp.array(0, dtype=jnp.int32)
    _, _, _, _, An_final, _, fmn_final, sum_final, _ = lax.while_loop(
        cond_fun, body_fun, (x, y, z, p, An0, delta0, fmn0, sum_term0, n0)
    )

    X = fmn_final * (An0 - x) / An_final
    Y = fmn_final * (An0 - y) / An_final
    Z = fmn_final * (An0 - z) / An_final
    P = -0.5 * (X + Y + Z)
    E2 = X * Y + X * Z + Y * Z - 3 * P * P
    E3 = X * Y * Z + 2 * E2 * P + 4 * P * P * P
    E4 = (2 * X * Y * Z + E2 * P + 3 * P * P * P) * P
    E5 = X * Y * Z * P * P
    result = fmn_final * jnp.pow(An_final, -3 / 2) * _rd_rj_series(E2, E3, E4, E5)
    return _check_converged(
        result + 6 * sum_final, fmn_final * Q < An_final, "R_J duplication"
    )


def elliprj(x: SFloat, y: SFloat, z: SFloat, p: SFloat) -> SFloat:
    r"""Carlson symmetric elliptic integral of the third kind

    $$ R_J(x, y, z, p) = \frac{3}{2} \int_0^\infty \frac{dt}{(t+p) \sqrt{(t+x)(t+y)(t+z)}} $$

    Note: $R_J(x, y, z, z) = R_D(x, y, z)$

    Args:
        x: Real argument (x >= 0)
        y: Real argument (y >= 0)
        z: Real argument (z >= 0)
        p: Real argument (p > 0)

    At most one of x, y, z can be zero.

    Returns:
        R_J(x, y, z, p)
    """
    x, y, z, p = as_float(x, y, z, p)
    _, me, _ = jnp.sort(jnp.array([x, y, z]))
    lo = jnp.minimum(jnp.minimum(x, y), z)
    x = error_if(x, lo < 0.0, DomainError, "R_J arguments must be non-negative")
    x = error_if(
        x, me == 0.0, DomainError, "R_J allows at most one of x, y, z to be zero"
    )
    p = error_if(p, p <= 0.0, DomainError, "R_J needs p > 0")
    return _elliprj_iter(x, y, z, p)
