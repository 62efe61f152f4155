"""
Tests of the chain-rule kernels: golden values, translational and rotational
invariance, agreement with autodiff gradients and singular geometries.
"""
import pytest
import numpy as np
import jax
import jax.numpy as jnp
from scipy.spatial.transform import Rotation as R

from pydynamo.potentials import harmonic, periodic
from pydynamo.derivatives import (
    bond_length,
    bond_forces,
    angle,
    angle_forces,
    dihedral,
    dihedral_forces,
)


def bond_harm(k, r0, coords, use_jax=False):
    r, rij = bond_length(coords[:, 0], coords[:, 1], use_jax=use_jax)
    u, f = harmonic(k, r0, r)
    return u, bond_forces(f, r, rij, use_jax=use_jax)


def angle_harm(k, t0, coords, use_jax=False):
    theta, cos_t, rji, rjk = angle(coords[:, 0], coords[:, 1], coords[:, 2], use_jax=use_jax)
    u, f = harmonic(k, t0, theta)
    return u, angle_forces(f, cos_t, rji, rjk, use_jax=use_jax)


def pdih(k, n, p0, coords, use_jax=False):
    psi, *vectors = dihedral(*(coords[:, i] for i in range(4)), use_jax=use_jax)
    u, f = periodic(k, n, p0, psi, use_jax=use_jax)
    return u, dihedral_forces(f, *vectors, use_jax=use_jax)


def idih_harm(k, p0, coords, use_jax=False):
    psi, *vectors = dihedral(*(coords[:, i] for i in range(4)), use_jax=use_jax)
    u, f = harmonic(k, p0, psi)
    return u, dihedral_forces(f, *vectors, use_jax=use_jax)


TERMS = [
    (lambda c, use_jax=False: bond_harm(2.0, 0.9, c, use_jax), 2),
    (lambda c, use_jax=False: angle_harm(1.5, 1.9, c, use_jax), 3),
    (lambda c, use_jax=False: pdih(3.0, 3.0, 0.3, c, use_jax), 4),
    (lambda c, use_jax=False: idih_harm(4.0, 0.2, c, use_jax), 4),
]


def random_coords(rng, n, natoms):
    return rng.normal(0.0, 1.0, size=(n, natoms, 3))


def test_bond_golden():
    coords = np.array([[[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]]])
    u, forces = bond_harm(1.0, 1.0, coords)
    assert np.isclose(u[0], 0.5)
    assert np.allclose(forces[0, 0], [1.0, 0.0, 0.0], atol=1e-3)
    assert np.allclose(forces[0, 1], [-1.0, 0.0, 0.0], atol=1e-3)


def test_bond_equilibrium_and_antisymmetry(rng):
    coords = np.array([[[0.0, 0.0, 0.0], [0.0, 1.2, 0.0]]])
    u, forces = bond_harm(5.0, 1.2, coords)
    assert u[0] == 0.0
    assert np.all(forces == 0.0)

    k, r0 = 3.0, 1.0
    coords = random_coords(rng, 20, 2)
    u, forces = bond_harm(k, r0, coords)
    dr = np.linalg.norm(coords[:, 1] - coords[:, 0], axis=-1) - r0
    assert np.allclose(u, 0.5 * k * dr**2)
    assert np.allclose(np.linalg.norm(forces[:, 0], axis=-1), k * np.abs(dr))
    assert np.all(forces[:, 0] == -forces[:, 1])


def test_angle_golden():
    coords = np.array([[[0.0, 1.0, 0.0], [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]])
    u, forces = angle_harm(1.0, 0.0, coords)
    assert np.isclose(u[0], 0.5 * (np.pi / 2) ** 2)
    expected = np.array([[1.571, 0.0, 0.0], [-1.571, -1.571, 0.0], [0.0, 1.571, 0.0]])
    assert np.allclose(forces[0], expected, atol=1e-3)


def test_periodic_torsion_golden():
    # psi = 90 degrees
    coords = np.array([[[1.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [0.0, 1.0, 1.0]]])
    psi, *_ = dihedral(*(coords[:, i] for i in range(4)))
    assert np.isclose(abs(psi[0]), np.pi / 2)
    u, f = periodic(1.0, 1.0, 0.0, abs(psi))
    assert np.isclose(u[0], 1.0)
    assert np.isclose(abs(f[0]), 1.0)
    u, forces = pdih(1.0, 1.0, 0.0, coords)
    assert np.isclose(u[0], 1.0)


def test_dihedral_sign_convention():
    # cis = 0, trans = pi, counterclockwise rotation of l about j->k is positive
    base = [[1.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 1.0]]
    for angle_deg in (0.0, 45.0, 135.0, -60.0, -170.0):
        a = np.radians(angle_deg)
        coords = np.array([base + [[np.cos(a), np.sin(a), 1.0]]])
        psi, *_ = dihedral(*(coords[:, i] for i in range(4)))
        assert np.isclose(psi[0], a)
    coords = np.array([base + [[-1.0, 0.0, 1.0]]])
    psi, *_ = dihedral(*(coords[:, i] for i in range(4)))
    assert np.isclose(psi[0], np.pi)


@pytest.mark.parametrize("term,natoms", TERMS)
def test_translational_invariance(rng, term, natoms):
    coords = random_coords(rng, 50, natoms)
    _, forces = term(coords)
    assert np.allclose(forces.sum(axis=1), 0.0, atol=1e-9)


@pytest.mark.parametrize("term,natoms", TERMS)
def test_zero_net_torque(rng, term, natoms):
    coords = random_coords(rng, 50, natoms)
    _, forces = term(coords)
    torque = np.cross(coords, forces).sum(axis=1)
    assert np.allclose(torque, 0.0, atol=1e-8)


@pytest.mark.parametrize("term,natoms", TERMS)
def test_rotational_invariance(rng, term, natoms):
    coords = random_coords(rng, 10, natoms)
    M = R.from_euler("zyx", [0.3, 1.1, -0.7]).as_matrix()
    u, forces = term(coords)
    u_rot, forces_rot = term(coords @ M.T)
    assert np.allclose(u, u_rot)
    assert np.allclose(forces @ M.T, forces_rot)


@pytest.mark.parametrize("term,natoms", TERMS)
def test_forces_are_negative_gradients(rng, term, natoms):
    coords = random_coords(rng, 20, natoms)

    def energy(coords):
        u, _ = term(coords, use_jax=True)
        return jnp.sum(u)

    grad = jax.grad(energy)(jnp.asarray(coords))
    _, forces = term(coords)
    assert np.allclose(forces, -np.asarray(grad), rtol=1e-6, atol=1e-8)


@pytest.mark.parametrize("term,natoms", TERMS)
def test_numpy_and_jax_kernels_agree(rng, term, natoms):
    coords = random_coords(rng, 20, natoms)
    u, forces = term(coords)
    u_jax, forces_jax = term(jnp.asarray(coords), use_jax=True)
    assert np.allclose(u, u_jax)
    assert np.allclose(forces, forces_jax)


def test_linear_angle_is_singular():
    coords = np.array([[[1.0, 0.0, 0.0], [0.0, 0.0, 0.0], [-1.0, 0.0, 0.0]]])
    with pytest.warns(RuntimeWarning):
        u, forces = angle_harm(1.0, 0.0, coords)
    assert np.isclose(u[0], 0.5 * np.pi**2)
    assert np.all(np.isnan(forces))

    coords = np.array([[[1.0, 0.0, 0.0], [0.0, 0.0, 0.0], [2.0, 0.0, 0.0]]])
    with pytest.warns(RuntimeWarning):
        u, forces = angle_harm(1.0, 1.0, coords)
    assert np.isclose(u[0], 0.5)
    assert np.all(~np.isfinite(forces))


def test_colinear_dihedral_is_singular():
    coords = np.array([[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0], [2.0, 1.0, 0.0]]])
    with pytest.warns(RuntimeWarning):
        u, forces = pdih(1.0, 1.0, 0.0, coords)
    assert np.isnan(u[0])
    assert np.all(np.isnan(forces))
