import numpy as np

__all__ = ['ParticleSystem']


class ParticleSystem:
    """Flat, index-addressed particle arrays of a simulation.

    Attributes:
     - masses: array of shape (N,) with atomic masses (amu)
     - charges: array of shape (N,) with atomic charges (e)
     - positions: array of shape (N,3) with positions (nm)
     - velocities: array of shape (N,3) with velocities (nm/ps)
     - forces: array of shape (N,3) with the force accumulator (kJ/mol/nm)
    """

    def __init__(self, masses, positions, velocities=None, charges=None, elements=None):
        self.masses = np.array(masses, dtype=np.float64)
        self.positions = np.array(positions, dtype=np.float64).reshape(-1, 3)
        natoms = self.masses.shape[0]
        assert self.positions.shape[0] == natoms, "positions and masses must have the same number of atoms"
        assert np.all(self.masses > 0), "masses must be positive"
        if velocities is None:
            self.velocities = np.zeros((natoms, 3), dtype=np.float64)
        else:
            self.velocities = np.array(velocities, dtype=np.float64).reshape(natoms, 3)
        self.charges = (
            np.zeros(natoms) if charges is None else np.array(charges, dtype=np.float64)
        )
        self.elements = elements
        self.forces = np.zeros((natoms, 3), dtype=np.float64)

    @property
    def natoms(self):
        return self.masses.shape[0]

    def kinetic_energy(self):
        return 0.5 * np.sum(self.masses[:, None] * self.velocities**2)

    def snapshot(self):
        """Read-only copy of the positions."""
        positions = self.positions.copy()
        positions.flags.writeable = False
        return positions
