"""
Chain-rule kernels: internal coordinates of 2-, 3- and 4-atom terms and the
projection of a generalized force onto per-atom Cartesian forces.

All kernels are vectorised over a leading interaction axis: positions are
arrays of shape (n,3) and forces come back as (n,arity,3). The per-atom
contributions of every kernel sum to zero and carry no net torque.

Singular geometries are not masked:
 - an angle of exactly 0 or pi makes 1/sin(theta) diverge,
 - three colinear consecutive atoms of a torsion give a zero plane normal,
and the resulting forces are Inf/NaN (numpy emits a RuntimeWarning).
"""
import numpy as onp
import jax.numpy as jnp

from .linalg import dot, cross, norm, norm2, displacement

__all__ = [
    'bond_length',
    'bond_forces',
    'angle',
    'angle_forces',
    'dihedral',
    'dihedral_forces',
]


def bond_length(ri, rj, box=None, use_jax=False):
    """Distance between atoms i and j.

    Returns:
     - r: array of shape (n,)
     - rij: array of shape (n,3) with rj - ri
    """
    rij = displacement(ri, rj, box, use_jax=use_jax)
    return norm(rij, use_jax=use_jax), rij


def bond_forces(f, r, rij, use_jax=False):
    np = jnp if use_jax else onp
    fi = (f / r)[:, None] * -rij
    return np.stack((fi, -fi), axis=1)


def angle(ri, rj, rk, box=None, use_jax=False):
    """Bend angle i-j-k with vertex j.

    Returns:
     - theta: array of shape (n,) in [0, pi]
     - cos_t: array of shape (n,)
     - rji, rjk: arrays of shape (n,3) with ri - rj and rk - rj
    """
    np = jnp if use_jax else onp
    rji = displacement(rj, ri, box, use_jax=use_jax)
    rjk = displacement(rj, rk, box, use_jax=use_jax)
    cos_t = dot(rji, rjk, use_jax) / np.sqrt(norm2(rji, use_jax) * norm2(rjk, use_jax))
    # rounding can push |cos| slightly above 1 for nearly linear angles
    cos_t = np.clip(cos_t, -1.0, 1.0)
    return np.arccos(cos_t), cos_t, rji, rjk


def angle_forces(f, cos_t, rji, rjk, use_jax=False):
    np = jnp if use_jax else onp
    nji = norm(rji, use_jax)
    njk = norm(rjk, use_jax)
    uji = rji / nji[:, None]
    ujk = rjk / njk[:, None]

    # diverges at theta = 0 or pi
    fsin = f / np.sqrt(1.0 - cos_t * cos_t)

    fi = (fsin / nji)[:, None] * (cos_t[:, None] * uji - ujk)
    fk = (fsin / njk)[:, None] * (cos_t[:, None] * ujk - uji)
    return np.stack((fi, -fi - fk, fk), axis=1)


def dihedral(ri, rj, rk, rl, box=None, use_jax=False):
    """Torsion angle of the chain i-j-k-l (IUPAC sign convention, cis = 0).

    Returns:
     - psi: array of shape (n,) in [-pi, pi]
     - rij, rjk, rkl: bond vectors, arrays of shape (n,3)
     - nijk, njkl: normals of the planes ijk and jkl, arrays of shape (n,3)
    """
    np = jnp if use_jax else onp
    rij = displacement(ri, rj, box, use_jax=use_jax)
    rjk = displacement(rj, rk, box, use_jax=use_jax)
    rkl = displacement(rk, rl, box, use_jax=use_jax)

    nijk = cross(rij, rjk, use_jax)
    njkl = cross(rjk, rkl, use_jax)

    cos_psi = dot(nijk, njkl, use_jax) / np.sqrt(
        norm2(nijk, use_jax) * norm2(njkl, use_jax)
    )
    cos_psi = np.clip(cos_psi, -1.0, 1.0)
    # planar trans (dot == 0) maps to +pi
    sign = np.where(dot(nijk, rkl, use_jax) >= 0.0, 1.0, -1.0)
    return sign * np.arccos(cos_psi), rij, rjk, rkl, nijk, njkl


def dihedral_forces(f, rij, rjk, rkl, nijk, njkl, use_jax=False):
    """Distribute the generalized torsion force f = -dU/dpsi on the 4 atoms.

    The outer atoms are pushed along the plane normals, the inner atoms
    receive the combination that cancels both net force and net torque.
    """
    np = jnp if use_jax else onp
    n2jk = norm2(rjk, use_jax)
    njk = np.sqrt(n2jk)

    fi = -(f * njk / norm2(nijk, use_jax))[:, None] * nijk
    fl = (f * njk / norm2(njkl, use_jax))[:, None] * njkl

    a = (dot(rij, rjk, use_jax) / n2jk)[:, None]
    b = (dot(rkl, rjk, use_jax) / n2jk)[:, None]
    fj = -(1.0 + a) * fi + b * fl
    fk = a * fi - (1.0 + b) * fl
    return np.stack((fi, fj, fk, fl), axis=1)
