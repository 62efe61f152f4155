import argparse
import yaml
import os
import time


__all__ = []

def main() -> None:
    parser = argparse.ArgumentParser(
        description="pydynamo: force-field molecular dynamics"
    )
    parser.add_argument(
        "input_file", type=str, help="Path to the input configuration file"
    )
    args = parser.parse_args()

    with open(args.input_file, "r") as f:
        simulation_parameters = yaml.safe_load(f)

    # relative paths are resolved from the input file directory
    input_dir = os.path.dirname(os.path.abspath(args.input_file))
    for key in ("topology", "coordinates"):
        value = simulation_parameters.get(key)
        if isinstance(value, str) and not os.path.isabs(value):
            simulation_parameters[key] = os.path.join(input_dir, value)

    if simulation_parameters.get("use_jax", False):
        import jax
        jax.config.update("jax_platforms", "cpu")
        jax.config.update("jax_enable_x64", True)

    from .md import initialize_simulation, run_simulation
    system = initialize_simulation(simulation_parameters)

    dt = system["dt"]  # ps
    if "nsteps" in simulation_parameters:
        n_steps = int(simulation_parameters["nsteps"])
    else:
        simulation_time = simulation_parameters["simulation_time"]  # ps
        n_steps = round(simulation_time / dt)
    simulation_time = n_steps * dt  # adjust to exact number of steps
    print(f"# Running simulation for {simulation_time} ps ({n_steps} steps of {dt} ps)")

    print_step = simulation_parameters.get("print_step", 100)

    traj_file = str(simulation_parameters.get("traj_file", "trajectory.dat"))
    write_traj = traj_file.lower() != "none"
    traj = None
    if write_traj:
        from .trajectory import TrajectoryWriter
        traj = TrajectoryWriter(traj_file, simulation_parameters.get("traj_stride", 1))

    time_start = time.time()
    try:
        run_simulation(system, n_steps, print_step=print_step, trajectory=traj)
    finally:
        if traj is not None:
            traj.close()

    total_time = time.time() - time_start
    nsperday = (simulation_time * 1e-3 / total_time) * 60 * 60 * 24
    print(f"# {simulation_time} ps simulation completed in {total_time:.1f} s ({nsperday:.1f} ns/day)")


if __name__ == "__main__":
    main()
