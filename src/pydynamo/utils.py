import numpy as np

__all__ = ['COULOMB_CONSTANT', 'K_B', 'get_composition_string']

# GROMACS units: nm, ps, amu, kJ/mol, e
COULOMB_CONSTANT = 138.93549  # kJ mol^-1 nm e^-2
K_B = 0.0083144626  # kJ mol^-1 K^-1


def get_composition_string(elements):
    """Get a string representation of the composition from element symbols.

    Args:
     - elements: sequence of element symbols, one per atom
    Returns:
     - composition_str: string representing the composition, e.g. "C4_H10"
    """
    symbols, counts = np.unique(np.asarray(elements, dtype=str), return_counts=True)
    composition_str = "_".join(f"{s}{int(n)}" for s, n in zip(symbols, counts))
    return composition_str
