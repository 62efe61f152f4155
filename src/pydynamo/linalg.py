import numpy as onp
import jax.numpy as jnp
import numba

__all__ = ['dot', 'cross', 'norm2', 'norm', 'displacement', 'min_image', 'wrap_positions']


def dot(a, b, use_jax=False):
    np = jnp if use_jax else onp
    return np.sum(a * b, axis=-1)


def cross(a, b, use_jax=False):
    np = jnp if use_jax else onp
    return np.cross(a, b)


def norm2(a, use_jax=False):
    return dot(a, a, use_jax=use_jax)


def norm(a, use_jax=False):
    np = jnp if use_jax else onp
    return np.sqrt(norm2(a, use_jax=use_jax))


def min_image(vecs, box, use_jax=False):
    """Minimum image convention for an orthorhombic box.

    Args:
     - vecs: array of shape (...,3) with displacement vectors
     - box: array of shape (3,) with box lengths
    Returns:
     - vecs: displacement vectors with every component in [-L/2, L/2]
    """
    np = jnp if use_jax else onp
    box = np.asarray(box)
    return vecs - box * np.round(vecs / box)


def displacement(ri, rj, box=None, use_jax=False):
    """Displacement vectors rj - ri (minimum image if a box is given)."""
    rij = rj - ri
    if box is not None:
        rij = min_image(rij, box, use_jax=use_jax)
    return rij


@numba.njit
def _wrap_positions(positions, box):
    nat = positions.shape[0]
    for i in range(nat):
        for d in range(3):
            positions[i, d] = positions[i, d] % box[d]


def wrap_positions(positions, box):
    """Wrap positions (in place) into the [0, L) box.

    Args:
     - positions: float64 array of shape (N,3), modified in place
     - box: array of shape (3,) with box lengths
    Returns:
     - positions: the same array
    """
    assert positions.dtype == onp.float64 and positions.flags.c_contiguous
    _wrap_positions(positions, onp.asarray(box, dtype=onp.float64))
    return positions
