import time

import numpy as np
from pathlib import Path

from .utils import get_composition_string
from .topology import read_topology, topology_from_dict
from .forcefield import ForceField
from .data_model import ParticleSystem
from .integrator import VelocityVerlet
from .initial_configuration import (
    read_coordinates,
    sample_velocities,
    remove_com_velocity,
    apply_random_rotation,
)

__all__ = ['initialize_simulation', 'run_simulation']


def initialize_simulation(simulation_parameters, verbose=True):

    # load topology
    topology = simulation_parameters["topology"]
    if isinstance(topology, dict):
        topology = topology_from_dict(topology)
    elif isinstance(topology, (str, Path)):
        assert Path(topology).is_file(), f"File {topology} does not exist."
        topology = read_topology(topology)
    else:
        raise ValueError("topology must be a file path or a dictionary")

    # load initial configuration
    geometry = simulation_parameters["coordinates"]
    box = None
    if isinstance(geometry, (str, Path)):
        assert Path(geometry).is_file(), f"File {geometry} does not exist."
        box, coordinates = read_coordinates(geometry)
    else:
        coordinates = np.array(geometry, dtype=np.float64).reshape(-1, 3)
    box = simulation_parameters.get("box", box)

    atoms = topology.atoms()
    if coordinates.shape[0] != len(atoms):
        raise ValueError(
            f"Topology has {len(atoms)} atoms but {coordinates.shape[0]} coordinates were given"
        )
    masses = np.array([a.mass for a in atoms], dtype=np.float64)
    if verbose:
        composition_str = get_composition_string([a.element for a in atoms])
        print("# Initial configuration loaded: ", composition_str)

    seed = simulation_parameters.get("seed", None)
    if seed is not None:
        np.random.seed(seed)

    # random rotation
    do_random_rotation = simulation_parameters.get("random_rotation", False)
    if do_random_rotation:
        coordinates = apply_random_rotation(coordinates)
        if verbose:
            print("# Applied random rotation to initial configuration.")

    # sample velocities from Maxwell-Boltzmann distribution
    temperature = simulation_parameters.get("temperature", 0.0)  # Kelvin
    assert temperature >= 0.0, "Temperature must be non-negative"
    if temperature > 0.0:
        velocities = sample_velocities(masses, temperature)
        velocities = remove_com_velocity(coordinates, velocities, masses)
        if verbose:
            print(f"# Sampled velocities at T={temperature} K.")
    else:
        velocities = np.zeros_like(coordinates)

    periodic = simulation_parameters.get("periodic", False)
    if periodic:
        assert box is not None, "periodic simulations require a box"
        box = np.asarray(box, dtype=np.float64)
        assert box.shape == (3,) and np.all(box > 0), "box must hold 3 positive lengths"
        if verbose:
            print(f"# Periodic box: {box[0]:.3f} {box[1]:.3f} {box[2]:.3f} nm")
    else:
        box = None

    use_jax = simulation_parameters.get("use_jax", False)
    forcefield = ForceField.from_topology(topology, box=box, use_jax=use_jax, verbose=verbose)

    particles = ParticleSystem(
        masses,
        coordinates,
        velocities,
        charges=[a.charge for a in atoms],
        elements=[a.element for a in atoms],
    )

    # initial forces, required by the first integration step
    energy, forces = forcefield.evaluate(particles.positions)
    particles.forces[:] = forces

    dt = simulation_parameters.get("dt", 0.001)  # ps
    integrator = VelocityVerlet(dt, particles.natoms, box=box)

    return {
        "topology": topology,
        "forcefield": forcefield,
        "particles": particles,
        "integrator": integrator,
        "energy": energy,
        "dt": dt,
    }


def run_simulation(system, n_steps, print_step=100, trajectory=None, verbose=True):
    """Run n_steps of velocity Verlet on an initialized system.

    Args:
     - system: dict returned by initialize_simulation
     - n_steps: number of steps
     - print_step: print energies every print_step steps
     - trajectory: optional TrajectoryWriter
    Returns:
     - energies: array of shape (n_steps,2) with potential and kinetic energies
    """
    forcefield = system["forcefield"]
    particles = system["particles"]
    integrator = system["integrator"]
    dt = integrator.dt

    energies = np.zeros((n_steps, 2), dtype=np.float64)
    time0 = time.time()
    if verbose:
        print(f"#{'Step':>10} {'Time':>12} {'Etot':>12} {'Epot':>12} {'Ekin':>12} {'ns/day':>12}")
    for istep in range(n_steps):
        epot = integrator.integrate(
            forcefield,
            particles.positions,
            particles.velocities,
            particles.forces,
            particles.masses,
        )
        ekin = particles.kinetic_energy()
        energies[istep] = epot, ekin
        system["energy"] = epot

        if trajectory is not None:
            trajectory.write(particles.snapshot(), integrator.step, integrator.time)

        if verbose and (istep + 1) % print_step == 0:
            time_elapsed = time.time() - time0
            time0 = time.time()
            time_per_step = time_elapsed / print_step
            ns_per_day = dt * 1e-3 * 60 * 60 * 24 / max(time_per_step, 1e-12)
            print(
                f" {integrator.step:10} {integrator.time:12.4f} {epot+ekin:12.3f} {epot:12.3f} {ekin:12.3f} {ns_per_day:12.1f}"
            )
    return energies
