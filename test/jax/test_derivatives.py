"""Test derivative rules against autodiff and numeric differentiation"""

import jax
import jax.numpy as jnp
import numpy as np
import pytest
import scipy.differentiate

from ellint.jax import derivatives, legendre, rules
from ellint.numpy.legendre import ScipyAlg

NSAMP_DERIV = 20

scipy_alg = ScipyAlg()


def _numeric_deriv(func, x: float, step: float, direction: int = 0):
    """Numeric derivative of a scalar function of x with scipy.differentiate

    The step is the largest offset from x, so it also bounds the domain probed.
    """
    out = scipy.differentiate.derivative(
        func, x, initial_step=step, step_direction=direction
    )
    assert out.success
    return pytest.approx(out.df, rel=1e-7, abs=1e-5)


def _step(x: float, upper: float = 1.0) -> float:
    return min(0.5, (upper - x) / 2)


@pytest.fixture
def samples(rng):
    m = rng.uniform(0.05, 0.95, size=NSAMP_DERIV)
    n = rng.uniform(0.05, 0.95, size=NSAMP_DERIV)
    phi = rng.uniform(0.0, 2 * np.pi, size=NSAMP_DERIV)
    return n, phi, m


def test_grad_complete(samples):
    n, _, m = samples
    assert jax.vmap(jax.grad(legendre.ellipk))(m) == pytest.approx(
        jax.vmap(derivatives.dK_dm)(m), rel=1e-12
    )
    assert jax.vmap(jax.grad(legendre.ellipe))(m) == pytest.approx(
        jax.vmap(derivatives.dE_dm)(m), rel=1e-12
    )
    dPidn, dPidm = jax.vmap(jax.grad(legendre.ellippi, argnums=(0, 1)))(n, m)
    assert dPidn == pytest.approx(jax.vmap(derivatives.dPi_dn)(n, m), rel=1e-12)
    assert dPidm == pytest.approx(jax.vmap(derivatives.dPi_dm)(n, m), rel=1e-12)


def test_grad_incomplete(samples):
    n, phi, m = samples
    dFdphi, dFdm = jax.vmap(jax.grad(legendre.ellipf, argnums=(0, 1)))(phi, m)
    assert dFdphi == pytest.approx(jax.vmap(derivatives.dF_dphi)(phi, m), rel=1e-12)
    assert dFdm == pytest.approx(jax.vmap(derivatives.dF_dm)(phi, m), rel=1e-12)

    dEdphi, dEdm = jax.vmap(jax.grad(legendre.ellipeinc, argnums=(0, 1)))(phi, m)
    assert dEdphi == pytest.approx(
        jax.vmap(derivatives.dEinc_dphi)(phi, m), rel=1e-12
    )
    assert dEdm == pytest.approx(jax.vmap(derivatives.dEinc_dm)(phi, m), rel=1e-12)

    dPidn, dPidphi, dPidm = jax.vmap(
        jax.grad(legendre.ellippiinc, argnums=(0, 1, 2))
    )(n, phi, m)
    assert dPidn == pytest.approx(
        jax.vmap(derivatives.dPiinc_dn)(n, phi, m), rel=1e-12
    )
    assert dPidphi == pytest.approx(
        jax.vmap(derivatives.dPiinc_dphi)(n, phi, m), rel=1e-12
    )
    assert dPidm == pytest.approx(
        jax.vmap(derivatives.dPiinc_dm)(n, phi, m), rel=1e-12
    )


def test_forward_mode(samples):
    """jacfwd goes through the same custom JVP as grad"""
    n, phi, m = samples
    dPidn, dPidphi, dPidm = jax.vmap(
        jax.jacfwd(legendre.ellippiinc, argnums=(0, 1, 2))
    )(n, phi, m)
    dPidn_rev, dPidphi_rev, dPidm_rev = jax.vmap(
        jax.grad(legendre.ellippiinc, argnums=(0, 1, 2))
    )(n, phi, m)
    assert dPidn == pytest.approx(dPidn_rev, rel=1e-14)
    assert dPidphi == pytest.approx(dPidphi_rev, rel=1e-14)
    assert dPidm == pytest.approx(dPidm_rev, rel=1e-14)


def test_complete_rules_numeric(samples):
    n, _, m = samples
    for ni, mi in zip(n, m, strict=True):
        assert derivatives.dK_dm(mi) == _numeric_deriv(scipy_alg.K, mi, _step(mi))
        assert derivatives.dE_dm(mi) == _numeric_deriv(scipy_alg.E, mi, _step(mi))
        assert derivatives.dPi_dn(ni, mi) == _numeric_deriv(
            lambda nn, mi=mi: scipy_alg.Pi(nn, mi), ni, _step(ni)
        )
        assert derivatives.dPi_dm(ni, mi) == _numeric_deriv(
            lambda mm, ni=ni: scipy_alg.Pi(ni, mm), mi, _step(mi)
        )


def test_incomplete_rules_numeric(samples):
    for ni, phii, mi in zip(*samples, strict=True):
        assert derivatives.dF_dphi(phii, mi) == _numeric_deriv(
            lambda p, mi=mi: scipy_alg.F(p, mi), phii, 0.5
        )
        assert derivatives.dF_dm(phii, mi) == _numeric_deriv(
            lambda mm, phii=phii: scipy_alg.F(phii, mm), mi, _step(mi)
        )
        assert derivatives.dEinc_dphi(phii, mi) == _numeric_deriv(
            lambda p, mi=mi: scipy_alg.E(p, mi), phii, 0.5
        )
        assert derivatives.dEinc_dm(phii, mi) == _numeric_deriv(
            lambda mm, phii=phii: scipy_alg.E(phii, mm), mi, _step(mi)
        )


def test_incomplete_pi_rules_numeric(samples):
    for ni, phii, mi in zip(*samples, strict=True):
        assert derivatives.dPiinc_dn(ni, phii, mi) == _numeric_deriv(
            lambda nn, phii=phii, mi=mi: scipy_alg.Pi(nn, phii, mi), ni, _step(ni)
        )
        assert derivatives.dPiinc_dphi(ni, phii, mi) == _numeric_deriv(
            lambda p, ni=ni, mi=mi: scipy_alg.Pi(ni, p, mi), phii, 0.5
        )
        assert derivatives.dPiinc_dm(ni, phii, mi) == _numeric_deriv(
            lambda mm, ni=ni, phii=phii: scipy_alg.Pi(ni, phii, mm), mi, _step(mi)
        )


def test_gradient_quarter_period_m0():
    dEdphi, dEdm = jax.grad(legendre.E, argnums=(0, 1))(jnp.pi / 2, 0.0)
    assert dEdphi == pytest.approx(1.0, rel=1e-15)
    assert dEdm == pytest.approx(-np.pi / 8, rel=1e-14)


def test_m0_limits():
    assert derivatives.dK_dm(0.0) == pytest.approx(np.pi / 8, rel=1e-14)
    assert derivatives.dE_dm(0.0) == pytest.approx(-np.pi / 8, rel=1e-14)
    assert jax.grad(legendre.ellipk)(0.0) == pytest.approx(np.pi / 8, rel=1e-14)
    assert jax.grad(legendre.ellipe)(0.0) == pytest.approx(-np.pi / 8, rel=1e-14)

    for phi in (0.4, 1.3, 2.9):
        expected = (phi - np.sin(phi) * np.cos(phi)) / 4
        assert derivatives.dF_dm(phi, 0.0) == pytest.approx(expected, rel=1e-13)
        assert derivatives.dEinc_dm(phi, 0.0) == pytest.approx(-expected, rel=1e-13)
        assert derivatives.dPiinc_dn(0.0, phi, 0.0) == pytest.approx(
            2 * expected, rel=1e-14
        )


@pytest.mark.parametrize("m", [0.2, 0.7])
@pytest.mark.parametrize("phi", [0.6, 1.4, 4.0])
def test_n0_limit(phi: float, m: float):
    assert derivatives.dPiinc_dn(0.0, phi, m) == _numeric_deriv(
        lambda nn: scipy_alg.Pi(nn, phi, m), 0.0, 0.25
    )
    assert derivatives.dPi_dn(0.0, m) == _numeric_deriv(
        lambda nn: scipy_alg.Pi(nn, m), 0.0, 0.25
    )


@pytest.mark.parametrize("m", [-0.5, 0.2, 0.7])
@pytest.mark.parametrize("phi", [0.6, 1.4, 4.0])
def test_n_equals_m_limit(phi: float, m: float):
    n = m
    assert derivatives.dPiinc_dn(n, phi, m) == _numeric_deriv(
        lambda nn: scipy_alg.Pi(nn, phi, m), n, _step(n)
    )
    assert derivatives.dPiinc_dm(n, phi, m) == _numeric_deriv(
        lambda mm: scipy_alg.Pi(n, phi, mm), m, _step(m)
    )
    assert derivatives.dPi_dn(n, m) == _numeric_deriv(
        lambda nn: scipy_alg.Pi(nn, m), n, _step(n)
    )
    assert derivatives.dPi_dm(n, m) == _numeric_deriv(
        lambda mm: scipy_alg.Pi(n, mm), m, _step(m)
    )
    # autodiff picks up the same limit
    assert jax.grad(legendre.ellippiinc, argnums=0)(n, phi, m) == pytest.approx(
        derivatives.dPiinc_dn(n, phi, m), rel=1e-14
    )


@pytest.mark.parametrize("m", [0.0, 0.4])
@pytest.mark.parametrize("phi", [0.5, 1.2])
def test_n1_limit(phi: float, m: float):
    """n = 1 is only finite below the quarter period, approached from below"""
    assert derivatives.dPiinc_dn(1.0, phi, m) == _numeric_deriv(
        lambda nn: scipy_alg.Pi(nn, phi, m), 1.0, 0.25, direction=-1
    )


def test_singular_complete():
    assert derivatives.dK_dm(1.0) == np.inf
    assert derivatives.dPi_dn(1.0, 0.5) == np.inf
    assert derivatives.dPi_dm(1.0, 0.5) == np.inf
    assert derivatives.dPi_dm(0.5, 1.0) == np.inf


OFFSETS = [1e-10, 1e-13, 1e-15]


def _near(limit):
    return pytest.approx(limit, rel=1e-8, abs=1e-8)


@pytest.mark.parametrize("offset", OFFSETS)
def test_near_m0(offset: float):
    for m in (offset, -offset):
        assert derivatives.dK_dm(m) == _near(np.pi / 8)
        assert derivatives.dE_dm(m) == _near(-np.pi / 8)
        assert jax.grad(legendre.ellipk)(m) == _near(np.pi / 8)
        for phi in (0.4, 1.3, 2.9):
            expected = (phi - np.sin(phi) * np.cos(phi)) / 4
            assert derivatives.dF_dm(phi, m) == _near(expected)
            assert derivatives.dEinc_dm(phi, m) == _near(-expected)
            assert derivatives.dPiinc_dn(0.0, phi, m) == _near(2 * expected)
            assert derivatives.dPiinc_dn(0.3, phi, m) == _near(
                derivatives.dPiinc_dn(0.3, phi, 0.0)
            )
            assert derivatives.dPiinc_dm(0.3, phi, m) == _near(
                derivatives.dPiinc_dm(0.3, phi, 0.0)
            )


@pytest.mark.parametrize("offset", OFFSETS)
@pytest.mark.parametrize("m", [-0.5, 0.2, 0.7])
def test_near_n_equals_m(offset: float, m: float):
    for n in (m + offset, m - offset):
        assert derivatives.dPi_dn(n, m) == _near(derivatives.dPi_dn(m, m))
        assert derivatives.dPi_dm(n, m) == _near(derivatives.dPi_dm(m, m))
        for phi in (0.6, 1.4, 4.0):
            assert derivatives.dPiinc_dn(n, phi, m) == _near(
                derivatives.dPiinc_dn(m, phi, m)
            )
            assert derivatives.dPiinc_dm(n, phi, m) == _near(
                derivatives.dPiinc_dm(m, phi, m)
            )


@pytest.mark.parametrize("offset", OFFSETS)
@pytest.mark.parametrize("m", [0.2, 0.7])
def test_near_n0(offset: float, m: float):
    for n in (offset, -offset):
        assert derivatives.dPi_dn(n, m) == _near(derivatives.dPi_dn(0.0, m))
        for phi in (0.6, 1.4, 4.0):
            assert derivatives.dPiinc_dn(n, phi, m) == _near(
                derivatives.dPiinc_dn(0.0, phi, m)
            )


@pytest.mark.parametrize("offset", OFFSETS)
@pytest.mark.parametrize("m", [0.0, 0.4])
def test_near_n1(offset: float, m: float):
    for phi in (0.5, 1.2):
        limit = derivatives.dPiinc_dn(1.0, phi, m)
        assert derivatives.dPiinc_dn(1 - offset, phi, m) == _near(limit)
        assert jax.grad(legendre.ellippiinc)(1 - offset, phi, m) == _near(limit)


@pytest.mark.parametrize("m", [-0.5, 0.2, 0.7])
def test_series_edge_n_equals_m(m: float):
    """The n = m series and the general expression agree at the switch"""
    width = rules.SERIES_THRESHOLD * (1 - m)
    for phi in (0.6, 4.0):
        inside = derivatives.dPiinc_dn(m + 0.999 * width, phi, m)
        outside = derivatives.dPiinc_dn(m + 1.001 * width, phi, m)
        assert inside == pytest.approx(outside, rel=1e-6)
        inside = derivatives.dPiinc_dm(m - 0.999 * width, phi, m)
        outside = derivatives.dPiinc_dm(m - 1.001 * width, phi, m)
        assert inside == pytest.approx(outside, rel=1e-6)


@pytest.mark.parametrize("m", [0.0, 0.4])
def test_series_edge_n1(m: float):
    """The n = 1 series and the general expression agree at the switch"""
    for phi in (0.5, 1.2):
        width = rules.SERIES_THRESHOLD * np.cos(phi) ** 2
        inside = derivatives.dPiinc_dn(1 - 0.999 * width, phi, m)
        outside = derivatives.dPiinc_dn(1 - 1.001 * width, phi, m)
        assert inside == pytest.approx(outside, rel=1e-6)
