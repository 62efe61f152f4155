import numpy as np
from scipy.spatial.transform import Rotation as R

from .utils import K_B

__all__ = [
    'read_coordinates',
    'sample_velocities',
    'remove_com_velocity',
    'apply_random_rotation',
]


def read_coordinates(filename):
    """Read a coordinate file.

    The first line holds the box lengths, every other non-empty line the
    x y z coordinates of one atom.

    Args:
     - filename: path to the coordinate file
    Returns:
     - box: array of shape (3,) with box lengths
     - coordinates: array of shape (N,3) with atomic coordinates
    """
    rows = []
    with open(filename, "r") as f:
        for iline, line in enumerate(f, start=1):
            fields = line.split()
            if len(fields) == 0:
                continue
            if len(fields) != 3:
                raise ValueError(f"{filename}:{iline}: expected 3 values, got {len(fields)}")
            try:
                rows.append([float(x) for x in fields])
            except ValueError:
                raise ValueError(f"{filename}:{iline}: invalid coordinate line '{line.strip()}'") from None
    if len(rows) == 0:
        raise ValueError(f"{filename} is empty")
    data = np.array(rows, dtype=np.float64)
    return data[0], data[1:]


def sample_velocities(masses, temperature):
    """Sample velocities from Maxwell-Boltzmann distribution at given temperature.

    Args:
     - masses: array of shape (N,) with atomic masses (amu)
     - temperature: temperature in Kelvin
    Returns:
     - velocities: array of shape (N,3) with sampled velocities (nm/ps)
    """
    kT = K_B * temperature
    stddev = np.sqrt(kT / masses)  # (N,)
    velocities = (
        np.random.normal(0.0, 1.0, size=(masses.shape[0], 3)) * stddev[:, None]
    )
    return velocities


def remove_com_velocity(coordinates, velocities, masses):
    """Remove center of mass linear and angular velocities

    Args:
     - coordinates: array of shape (N,3) with atomic coordinates
     - velocities: array of shape (N,3) with atomic velocities
     - masses: array of shape (N,) with atomic masses
    Returns:
     - velocities: array of shape (N,3) with adjusted velocities (rotational and translational components removed)
    """
    totmass = masses.sum()
    com = np.sum(coordinates * masses[:, None], axis=0) / totmass
    coordinates = coordinates - com

    com_velocity = np.sum(velocities * masses[:, None], axis=0) / totmass
    velocities = velocities - com_velocity

    if coordinates.shape[0] < 3:
        return velocities

    # L = sum_i m_i r_i x v_i
    L = np.sum(np.cross(coordinates, velocities) * masses[:, None], axis=0)

    # I = sum_i m_i [ (r_i.r_i) I_3 - r_i r_i^T ]
    rr = coordinates[:, :, None] * coordinates[:, None, :]
    r2 = np.trace(rr, axis1=1, axis2=2)[:, None, None] * np.eye(3)[None, :, :]
    I = np.sum(masses[:, None, None] * (r2 - rr), axis=0)

    # pinv: the inertia tensor of a linear molecule is singular
    omega = np.linalg.pinv(I) @ L
    velocities -= np.cross(omega, coordinates)

    return velocities


def apply_random_rotation(coords):
    """Randomly rotate coordinates around their geometric center.

    Args:
    - coords: array of shape (N,3)
    Returns:
    - rotated_coordinates: array of shape (N,3)
    """
    center = coords.mean(axis=0)
    angles = np.random.uniform(0, 2 * np.pi, size=3)
    M = R.from_euler('zyx', angles, degrees=False).as_matrix()
    return (coords - center) @ M.T + center
