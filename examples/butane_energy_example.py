"""
Example of running pydynamo from a parameter dictionary and tracking the
potential, kinetic and total energies of a united-atom butane molecule.
"""

import numpy as np
from pydynamo.md import initialize_simulation, run_simulation
from pydynamo.trajectory import TrajectoryWriter

simulation_parameters = {
    "topology": "tests/butane.yaml",
    "coordinates": "tests/butane.crd",
    "dt": 0.0005,  # ps
    "temperature": 300.0,  # K
    "seed": 12345,
    "periodic": False,
}

if __name__ == "__main__":
    system = initialize_simulation(simulation_parameters)

    with TrajectoryWriter("butane_traj.dat", stride=10) as traj:
        energies = run_simulation(system, 2000, print_step=200, trajectory=traj)

    etot = energies.sum(axis=1)
    print(f"# Epot: mean {energies[:, 0].mean():.4f} kJ/mol")
    print(f"# Ekin: mean {energies[:, 1].mean():.4f} kJ/mol")
    print(f"# Etot drift: {etot[-1] - etot[0]:.2e} kJ/mol (std {np.std(etot):.2e})")
