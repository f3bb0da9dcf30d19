"""Uniform interface over elliptic integral algorithms

Every backend evaluates the same six Legendre integrals. The short names follow
the mathematical notation and dispatch on the number of arguments, so E(m) is
the complete and E(phi, m) the incomplete integral of the second kind.
"""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class EllipticAlgorithm(ABC):
    """Base class for elliptic integral backends"""

    name: str
    """Registry name, see get_algorithm"""

    @abstractmethod
    def ellipk(self, m):
        """Complete elliptic integral of the first kind K(m)"""

    @abstractmethod
    def ellipe(self, m):
        """Complete elliptic integral of the second kind E(m)"""

    @abstractmethod
    def ellippi(self, n, m):
        """Complete elliptic integral of the third kind Pi(n, m)"""

    @abstractmethod
    def ellipf(self, phi, m):
        """Incomplete elliptic integral of the first kind F(phi, m)"""

    @abstractmethod
    def ellipeinc(self, phi, m):
        """Incomplete elliptic integral of the second kind E(phi, m)"""

    @abstractmethod
    def ellippiinc(self, n, phi, m):
        """Incomplete elliptic integral of the third kind Pi(n, phi, m)"""

    def K(self, m):
        return self.ellipk(m)

    def E(self, phi_or_m, m=None):
        """E(m) when called with one argument, E(phi, m) with two"""
        if m is None:
            return self.ellipe(phi_or_m)
        return self.ellipeinc(phi_or_m, m)

    def F(self, phi, m):
        return self.ellipf(phi, m)

    def Pi(self, n, phi_or_m, m=None):
        """Pi(n, m) when called with two arguments, Pi(n, phi, m) with three"""
        if m is None:
            return self.ellippi(n, phi_or_m)
        return self.ellippiinc(n, phi_or_m, m)


def get_algorithm(name: str) -> EllipticAlgorithm:
    """Construct a backend by name

    Backends are imported on demand, so the scipy backend does not need JAX.

    Args:
        name: "carlson" (JAX, differentiable) or "scipy" (reference algorithms)
    """
    if name == "carlson":
        from ellint.jax.legendre import CarlsonAlg

        algorithm = CarlsonAlg()
    elif name == "scipy":
        from ellint.numpy.legendre import ScipyAlg

        algorithm = ScipyAlg()
    else:
        raise ValueError(f"Unknown algorithm: {name}")
    logger.debug(f"Using {type(algorithm).__name__} for elliptic integrals")
    return algorithm
