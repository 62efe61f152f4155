"""
Velocity Verlet integrator.

One step, given forces f(t) valid for the current positions:
    1. x(t+dt) = x(t) + v(t) dt + f(t)/(2m) dt^2
    2. f(t+dt) from the force field at x(t+dt)
    3. v(t+dt) = v(t) + (f(t) + f(t+dt))/(2m) dt
"""
import numpy as np

from .linalg import wrap_positions

__all__ = ['VelocityVerlet']


class VelocityVerlet:
    """Velocity Verlet time stepper.

    Attributes:
     - dt: time step (ps)
     - time: elapsed time (ps)
     - step: number of completed steps
    """

    def __init__(self, dt, natoms, box=None):
        assert dt > 0, "dt must be positive"
        self.dt = float(dt)
        self.time = 0.0
        self.step = 0
        self.box = None if box is None else np.asarray(box, dtype=np.float64)
        # forces of the previous step
        self._cache = np.zeros((natoms, 3), dtype=np.float64)

    def integrate(self, forcefield, positions, velocities, forces, masses):
        """Advance positions, velocities and forces (in place) by one step.

        forces must hold the forces of the current positions on entry, so an
        initial forcefield.evaluate is required before the first step.

        Args:
         - forcefield: object with evaluate(positions) -> (energy, forces)
         - positions, velocities, forces: float64 arrays of shape (N,3)
         - masses: array of shape (N,)
        Returns:
         - energy: potential energy at the new positions
        """
        dt = self.dt
        inv_masses = 1.0 / masses[:, None]

        positions += velocities * dt + 0.5 * forces * inv_masses * dt**2
        if self.box is not None:
            wrap_positions(positions, self.box)

        self._cache[:] = forces
        forces[:] = 0.0
        energy, new_forces = forcefield.evaluate(positions)
        forces += new_forces

        velocities += 0.5 * (forces + self._cache) * inv_masses * dt

        self.step += 1
        self.time += dt
        return energy
