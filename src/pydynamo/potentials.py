"""
Potential functions of a single internal coordinate.

Every function returns ``(energy, generalized_force)`` with
``generalized_force = -dU/dx`` and works elementwise on arrays, so that a
whole interaction list is evaluated in one call.
"""
import numpy as onp
import jax.numpy as jnp

from .utils import COULOMB_CONSTANT

__all__ = [
    'harmonic',
    'periodic',
    'ryckaert_bellemans',
    'lennard_jones',
    'buckingham',
    'coulomb',
]


def harmonic(k, x0, x):
    dx = x - x0
    kdx = k * dx
    return 0.5 * kdx * dx, -kdx


def periodic(k, n, x0, x, use_jax=False):
    np = jnp if use_jax else onp
    dx = n * x - x0
    return k * (1.0 + np.cos(dx)), k * n * np.sin(dx)


def ryckaert_bellemans(c, psi, use_jax=False):
    """Ryckaert-Bellemans torsion potential.

    U = sum_i c_i cos(psi - pi)^i for i = 0..5

    Args:
     - c: array of shape (...,6) with the coefficients c0..c5
     - psi: array of shape (...) with torsion angles (IUPAC convention)
    Returns:
     - energy, generalized force: arrays of shape (...)
    """
    np = jnp if use_jax else onp
    cos_psi = np.cos(psi - np.pi)
    powers = np.stack([cos_psi**i for i in range(6)], axis=-1)  # (...,6)
    energy = np.sum(c * powers, axis=-1)
    dsum = np.sum(c[..., 1:] * np.arange(1, 6) * powers[..., :5], axis=-1)
    # d/dpsi cos(psi - pi) = sin(psi)
    return energy, -np.sin(psi) * dsum


def lennard_jones(c12, c6, r):
    rinv6 = r ** -6
    c12_term = c12 * rinv6 * rinv6
    c6_term = c6 * rinv6
    return c12_term - c6_term, (12.0 * c12_term - 6.0 * c6_term) / r


def buckingham(a, b, c, r, use_jax=False):
    np = jnp if use_jax else onp
    repulsion = a * np.exp(-b * r)
    dispersion = c * r ** -6
    return repulsion - dispersion, b * repulsion - 6.0 * dispersion / r


def coulomb(qi, qj, r):
    energy = COULOMB_CONSTANT * qi * qj / r
    return energy, energy / r
