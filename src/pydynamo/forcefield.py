"""
Interaction registry.

Interactions are a closed set of NamedTuple variants holding their parameters
and the *global* indices of the atoms they act on. The ForceField keeps one
list per kind (bonds, angles, dihedrals, pairs) and evaluates every variant
in a single vectorised call.
"""
from typing import NamedTuple, Tuple, Dict, List

import numpy as onp
import jax
import jax.numpy as jnp

from .potentials import (
    harmonic,
    periodic,
    ryckaert_bellemans,
    lennard_jones,
    buckingham,
    coulomb,
)
from .derivatives import (
    bond_length,
    bond_forces,
    angle,
    angle_forces,
    dihedral,
    dihedral_forces,
)

__all__ = [
    'BondHarmonic',
    'AngleHarmonic',
    'DihedralPeriodic',
    'ImproperDihedralHarmonic',
    'DihedralRyckaertBellemans',
    'LJPair',
    'CoulombPair',
    'BuckinghamPair',
    'COMBINATION_RULES',
    'combination_rule',
    'parse_interaction',
    'ForceField',
]


class BondHarmonic(NamedTuple):
    k: float
    r0: float
    atoms: Tuple[int, int]


class AngleHarmonic(NamedTuple):
    k: float
    t0: float
    atoms: Tuple[int, int, int]


class DihedralPeriodic(NamedTuple):
    k: float
    n: float
    p0: float
    atoms: Tuple[int, int, int, int]


class ImproperDihedralHarmonic(NamedTuple):
    k: float
    p0: float
    atoms: Tuple[int, int, int, int]


class DihedralRyckaertBellemans(NamedTuple):
    c0: float
    c1: float
    c2: float
    c3: float
    c4: float
    c5: float
    atoms: Tuple[int, int, int, int]


class LJPair(NamedTuple):
    """Lennard-Jones pair with v = sigma (nm) and w = epsilon (kJ/mol)."""

    v: float
    w: float
    atoms: Tuple[int, int]


class CoulombPair(NamedTuple):
    qi: float
    qj: float
    atoms: Tuple[int, int]


class BuckinghamPair(NamedTuple):
    a: float
    b: float
    c: float
    atoms: Tuple[int, int]


### Combination rules
def combine_geometric(vi, wi, vj, wj):
    return (vi * vj) ** 0.5, (wi * wj) ** 0.5


def combine_lorentz_berthelot(vi, wi, vj, wj):
    return 0.5 * (vi + vj), (wi * wj) ** 0.5


COMBINATION_RULES = {
    "geom": combine_geometric,
    "LB": combine_lorentz_berthelot,
}


def combination_rule(name):
    """Return the combination function (vi, wi, vj, wj) -> (v, w) for a rule name."""
    if name not in COMBINATION_RULES:
        raise ValueError(
            f"Unknown combination rule '{name}'. Available: {list(COMBINATION_RULES)}"
        )
    return COMBINATION_RULES[name]


### Vectorised terms: (positions, atoms, params, box, use_jax) -> (u, fvec)
def _bond_harmonic_term(positions, atoms, params, box, use_jax):
    r, rij = bond_length(positions[atoms[:, 0]], positions[atoms[:, 1]], box, use_jax)
    u, f = harmonic(params[:, 0], params[:, 1], r)
    return u, bond_forces(f, r, rij, use_jax)


def _angle_harmonic_term(positions, atoms, params, box, use_jax):
    theta, cos_t, rji, rjk = angle(
        *(positions[atoms[:, i]] for i in range(3)), box=box, use_jax=use_jax
    )
    u, f = harmonic(params[:, 0], params[:, 1], theta)
    return u, angle_forces(f, cos_t, rji, rjk, use_jax)


def _torsion_term(potential):
    def term(positions, atoms, params, box, use_jax):
        psi, *vectors = dihedral(
            *(positions[atoms[:, i]] for i in range(4)), box=box, use_jax=use_jax
        )
        u, f = potential(params, psi, use_jax)
        return u, dihedral_forces(f, *vectors, use_jax=use_jax)

    return term


def _pair_term(potential):
    def term(positions, atoms, params, box, use_jax):
        r, rij = bond_length(
            positions[atoms[:, 0]], positions[atoms[:, 1]], box, use_jax
        )
        u, f = potential(params, r, use_jax)
        return u, bond_forces(f, r, rij, use_jax)

    return term


def _lj_potential(params, r, use_jax):
    sigma6 = params[:, 0] ** 6
    c6 = 4.0 * params[:, 1] * sigma6
    return lennard_jones(c6 * sigma6, c6, r)


_TERMS = {
    BondHarmonic: _bond_harmonic_term,
    AngleHarmonic: _angle_harmonic_term,
    DihedralPeriodic: _torsion_term(
        lambda p, psi, use_jax: periodic(p[:, 0], p[:, 1], p[:, 2], psi, use_jax)
    ),
    ImproperDihedralHarmonic: _torsion_term(
        lambda p, psi, use_jax: harmonic(p[:, 0], p[:, 1], psi)
    ),
    DihedralRyckaertBellemans: _torsion_term(
        lambda p, psi, use_jax: ryckaert_bellemans(p, psi, use_jax)
    ),
    LJPair: _pair_term(_lj_potential),
    CoulombPair: _pair_term(
        lambda p, r, use_jax: coulomb(p[:, 0], p[:, 1], r)
    ),
    BuckinghamPair: _pair_term(
        lambda p, r, use_jax: buckingham(p[:, 0], p[:, 1], p[:, 2], r, use_jax)
    ),
}

_KINDS = {
    BondHarmonic: "bonds",
    AngleHarmonic: "angles",
    DihedralPeriodic: "dihedrals",
    ImproperDihedralHarmonic: "dihedrals",
    DihedralRyckaertBellemans: "dihedrals",
    LJPair: "pairs",
    CoulombPair: "pairs",
    BuckinghamPair: "pairs",
}

_SCALES = {
    LJPair: "ljscale",
    BuckinghamPair: "ljscale",
    CoulombPair: "qqscale",
}


### Topology keywords: keyword -> (variant, number of atoms, number of parameters)
KEYWORDS = {
    "bond_harm": (BondHarmonic, 2, 2),
    "angle_harm": (AngleHarmonic, 3, 2),
    "pdih": (DihedralPeriodic, 4, 3),
    "idih_harm": (ImproperDihedralHarmonic, 4, 2),
    "rb_dih": (DihedralRyckaertBellemans, 4, 6),
    "lj_pair": (LJPair, 2, 2),
    "coul_pair": (CoulombPair, 2, 2),
    "buck_pair": (BuckinghamPair, 2, 3),
}

# keywords whose parameters can be derived from the atoms
_OPTIONAL_PARAMETERS = {"lj_pair", "coul_pair"}


def parse_interaction(keyword, tokens, offset=0, atoms=None, comb_rule="geom", nlocal=None):
    """Build one interaction from a topology specification.

    Args:
     - keyword: interaction keyword (see KEYWORDS)
     - tokens: sequence of tokens: 1-based local atom indices followed by the parameters
     - offset: global index of the first atom of the molecule replica
     - atoms: sequence of per-atom records (with v, w, charge attributes),
              indexed by global atom index; needed when pair parameters are omitted
     - comb_rule: combination rule used to derive missing lj_pair parameters
     - nlocal: optional number of atoms in the molecule, bounds the local indices
    Returns:
     - interaction: NamedTuple variant with global atom indices
    """
    if keyword not in KEYWORDS:
        raise ValueError(f"Unknown interaction '{keyword}'")
    variant, natoms, nparams = KEYWORDS[keyword]
    tokens = list(tokens)

    ntokens = len(tokens)
    if ntokens != natoms + nparams and not (
        keyword in _OPTIONAL_PARAMETERS and ntokens == natoms
    ):
        raise ValueError(
            f"'{keyword}' expects {natoms} atoms and {nparams} parameters, got {ntokens} tokens: {tokens}"
        )

    indices = []
    for token in tokens[:natoms]:
        try:
            local = int(token)
        except ValueError:
            raise ValueError(f"Invalid atom index '{token}' in '{keyword}'") from None
        if local < 1:
            raise ValueError(f"Atom indices are 1-based, got {local} in '{keyword}'")
        if nlocal is not None and local > nlocal:
            raise ValueError(
                f"Atom index {local} in '{keyword}' out of range for a molecule of {nlocal} atoms"
            )
        indices.append(local - 1 + offset)

    try:
        params = [float(token) for token in tokens[natoms:]]
    except ValueError:
        raise ValueError(f"Invalid parameter in '{keyword}': {tokens[natoms:]}") from None

    if len(params) == 0:
        if atoms is None:
            raise ValueError(f"'{keyword}' without parameters needs the atom list")
        ai, aj = (atoms[i] for i in indices)
        if keyword == "lj_pair":
            params = combination_rule(comb_rule)(ai.v, ai.w, aj.v, aj.w)
        else:
            params = (ai.charge, aj.charge)

    return variant(*params, atoms=tuple(indices))


class ForceField:
    """Concrete interactions of a system with a single evaluate contract.

    Args:
     - natoms: number of atoms in the system
     - interactions: optional iterable of interactions to add
     - comb_rule: combination rule name ('geom' or 'LB')
     - ljscale: scale factor for Lennard-Jones and Buckingham pairs
     - qqscale: scale factor for Coulomb pairs
     - box: optional array of shape (3,) for minimum image displacements
     - use_jax: evaluate with the jax.jit compiled backend
    """

    def __init__(
        self,
        natoms: int,
        interactions=(),
        comb_rule: str = "geom",
        ljscale: float = 1.0,
        qqscale: float = 1.0,
        box=None,
        use_jax: bool = False,
    ):
        combination_rule(comb_rule)
        self.natoms = int(natoms)
        self.comb_rule = comb_rule
        self.ljscale = float(ljscale)
        self.qqscale = float(qqscale)
        self.box = None if box is None else onp.asarray(box, dtype=onp.float64)
        self.use_jax = use_jax
        self.bonds: List = []
        self.angles: List = []
        self.dihedrals: List = []
        self.pairs: List = []
        self._compiled = None
        self._energy_and_forces = None
        for interaction in interactions:
            self.add(interaction)

    @classmethod
    def from_topology(cls, topology, box=None, use_jax=False, verbose=False):
        """Resolve molecule templates into global interactions.

        Every local 1-based index of replica r of a molecule is shifted by
        the global offset of that replica: base + r * natoms_in_molecule.
        """
        atoms = topology.atoms()
        ff = cls(
            len(atoms),
            comb_rule=topology.combination_rule,
            ljscale=topology.ljscale,
            qqscale=topology.qqscale,
            box=box,
            use_jax=use_jax,
        )
        base = 0
        for molecule in topology.molecules:
            nat = len(molecule.atoms)
            for replica in range(molecule.nmols):
                offset = base + replica * nat
                for keyword, tokens in molecule.interactions:
                    ff.add(
                        parse_interaction(
                            keyword,
                            tokens,
                            offset=offset,
                            atoms=atoms,
                            comb_rule=ff.comb_rule,
                            nlocal=nat,
                        )
                    )
            base += nat * molecule.nmols
        if verbose:
            counts = ", ".join(f"{n} {kind}" for kind, n in ff.count().items())
            print(f"# Force field built for {ff.natoms} atoms: {counts}")
        return ff

    def add(self, interaction):
        variant = type(interaction)
        if variant not in _KINDS:
            raise ValueError(f"Unknown interaction type {variant.__name__}")
        for index in interaction.atoms:
            if not 0 <= index < self.natoms:
                raise ValueError(
                    f"Atom index {index} of {variant.__name__} out of range for {self.natoms} atoms"
                )
        getattr(self, _KINDS[variant]).append(interaction)
        self._compiled = None
        self._energy_and_forces = None

    def count(self) -> Dict[str, int]:
        return {kind: len(getattr(self, kind)) for kind in ("bonds", "angles", "dihedrals", "pairs")}

    def compile(self):
        """Stack every variant into (atoms, params, scale) arrays."""
        if self._compiled is not None:
            return self._compiled
        grouped = {}
        for kind in ("bonds", "angles", "dihedrals", "pairs"):
            for interaction in getattr(self, kind):
                grouped.setdefault(type(interaction), []).append(interaction)
        compiled = []
        for variant, interactions in grouped.items():
            atoms = onp.array([x.atoms for x in interactions], dtype=onp.int64)
            params = onp.array([x[:-1] for x in interactions], dtype=onp.float64)
            scale = getattr(self, _SCALES[variant]) if variant in _SCALES else 1.0
            compiled.append((variant, atoms, params, scale))
        self._compiled = compiled
        return compiled

    def setup_energy_and_forces(self, use_jax=False):
        """Build the energy and forces function of the current interactions.

        Args:
         - use_jax: if True, the returned function is jax.jit compiled
        Returns:
         - energy_and_forces: function positions (N,3) -> (energy, forces (N,3))
        """
        np = jnp if use_jax else onp
        natoms = self.natoms
        box = self.box
        compiled = self.compile()
        if use_jax:
            compiled = [
                (variant, jnp.asarray(atoms), jnp.asarray(params), scale)
                for variant, atoms, params, scale in compiled
            ]

        def energy_and_forces(positions):
            energy = 0.0
            buffers = []
            for variant, atoms, params, scale in compiled:
                u, fvec = _TERMS[variant](positions, atoms, params, box, use_jax)
                # private buffer per kind, reduced below
                if use_jax:
                    forces = jnp.zeros((natoms, 3), dtype=positions.dtype).at[atoms].add(fvec)
                else:
                    forces = onp.zeros((natoms, 3), dtype=onp.float64)
                    onp.add.at(forces, atoms, fvec)
                energy = energy + scale * np.sum(u)
                buffers.append(scale * forces)
            if len(buffers) == 0:
                return energy, np.zeros((natoms, 3))
            return energy, sum(buffers[1:], buffers[0])

        if use_jax:
            return jax.jit(energy_and_forces)
        return energy_and_forces

    def evaluate(self, positions):
        """Total potential energy and forces at the given positions.

        Args:
         - positions: array of shape (N,3)
        Returns:
         - energy: float
         - forces: array of shape (N,3)
        """
        positions = onp.asarray(positions, dtype=onp.float64)
        assert positions.shape == (self.natoms, 3), f"positions must have shape ({self.natoms},3)"
        if self._energy_and_forces is None:
            self._energy_and_forces = self.setup_energy_and_forces(use_jax=self.use_jax)
        energy, forces = self._energy_and_forces(positions)
        return float(energy), onp.asarray(forces, dtype=onp.float64)
