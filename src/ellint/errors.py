"""Exceptions raised by the elliptic integral routines

Infinite results (e.g. K(1) or Pi(1, m)) are valid values and are returned,
not raised.
"""


class EllipticError(ArithmeticError):
    """Base class for elliptic integral evaluation failures"""


class DomainError(EllipticError, ValueError):
    """An argument is outside the supported domain

    Raised for negative Carlson arguments, more than one zero argument,
    parameter m > 1 or characteristic n > 1.
    """


class ConvergenceError(EllipticError):
    """An iteration did not converge within its iteration cap"""
