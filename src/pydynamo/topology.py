# -*- coding: utf-8 -*-
"""
Topology: atom types, molecule templates and their replication.

Contains:
- AtomType, TemplateAtom, Atom : per-atom records
- MoleculeTemplate : atoms and interaction specifications of one molecule
- Topology : ordered molecule templates, flattened into a global atom list
- read_topology, topology_from_dict : YAML topology loader
"""
from typing import NamedTuple, Optional, List, Dict, Tuple

import numpy as np
import yaml

__all__ = [
    'AtomType',
    'TemplateAtom',
    'Atom',
    'MoleculeTemplate',
    'Topology',
    'read_topology',
    'topology_from_dict',
]


class AtomType(NamedTuple):
    element: str
    mass: float
    v: float
    w: float


class TemplateAtom(NamedTuple):
    name: str
    atomtype: str
    charge: float = 0.0
    mass: Optional[float] = None


class Atom(NamedTuple):
    """Resolved atom of the simulated system, addressed by its global index."""

    index: int
    molecule: str
    resnum: int
    name: str
    atomtype: str
    element: str
    mass: float
    charge: float
    v: float
    w: float


class MoleculeTemplate:
    """Molecule replicated nmols times.

    Interactions are stored as (keyword, tokens) with 1-based local atom indices.
    """

    def __init__(self, name: str, nmols: int = 1):
        assert nmols >= 0, "nmols must be non-negative"
        self.name = name
        self.nmols = int(nmols)
        self.atoms: List[TemplateAtom] = []
        self.interactions: List[Tuple[str, List[str]]] = []

    def add_atom(self, name, atomtype, charge=0.0, mass=None):
        self.atoms.append(TemplateAtom(name, atomtype, float(charge), mass))
        return len(self.atoms)

    def add_interaction(self, spec):
        """Add an interaction from a 'keyword i j ... params' string or token list."""
        fields = spec.split() if isinstance(spec, str) else [str(x) for x in spec]
        if len(fields) == 0:
            raise ValueError(f"Empty interaction in molecule '{self.name}'")
        self.interactions.append((fields[0], fields[1:]))


class Topology:
    def __init__(
        self,
        combination_rule: str = "geom",
        ljscale: float = 1.0,
        qqscale: float = 1.0,
    ):
        self.combination_rule = combination_rule
        self.ljscale = float(ljscale)
        self.qqscale = float(qqscale)
        self.atomtypes: Dict[str, AtomType] = {}
        self.molecules: List[MoleculeTemplate] = []

    def add_atomtype(self, name, element, mass, v=0.0, w=0.0):
        self.atomtypes[name] = AtomType(str(element), float(mass), float(v), float(w))

    def add_molecule(self, molecule: MoleculeTemplate):
        self.molecules.append(molecule)
        return molecule

    @property
    def natoms(self) -> int:
        return sum(len(m.atoms) * m.nmols for m in self.molecules)

    def atoms(self) -> List[Atom]:
        """Flatten the molecule replicas into the global atom list."""
        atoms = []
        resnum = 0
        for molecule in self.molecules:
            for _ in range(molecule.nmols):
                resnum += 1
                for tatom in molecule.atoms:
                    if tatom.atomtype not in self.atomtypes:
                        raise ValueError(
                            f"Unknown atom type '{tatom.atomtype}' in molecule '{molecule.name}'"
                        )
                    atype = self.atomtypes[tatom.atomtype]
                    mass = atype.mass if tatom.mass is None else float(tatom.mass)
                    atoms.append(
                        Atom(
                            index=len(atoms),
                            molecule=molecule.name,
                            resnum=resnum,
                            name=tatom.name,
                            atomtype=tatom.atomtype,
                            element=atype.element,
                            mass=mass,
                            charge=tatom.charge,
                            v=atype.v,
                            w=atype.w,
                        )
                    )
        return atoms

    def masses(self) -> np.ndarray:
        return np.array([a.mass for a in self.atoms()], dtype=np.float64)

    def charges(self) -> np.ndarray:
        return np.array([a.charge for a in self.atoms()], dtype=np.float64)

    def elements(self) -> List[str]:
        return [a.element for a in self.atoms()]


def topology_from_dict(data):
    """Build a Topology from a mapping (parsed YAML).

    Expected keys: combination_rule, ljscale, qqscale, atomtypes, molecules.
    """
    if not isinstance(data, dict):
        raise ValueError("Topology must be a mapping")
    top = Topology(
        combination_rule=data.get("combination_rule", "geom"),
        ljscale=data.get("ljscale", 1.0),
        qqscale=data.get("qqscale", 1.0),
    )
    for name, entry in data.get("atomtypes", {}).items():
        try:
            top.add_atomtype(
                name, entry["element"], entry["mass"], entry.get("v", 0.0), entry.get("w", 0.0)
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid atom type '{name}': {e}") from None

    for entry in data.get("molecules", []):
        if "name" not in entry:
            raise ValueError("Each molecule requires a name")
        molecule = MoleculeTemplate(entry["name"], entry.get("nmols", 1))
        for atom in entry.get("atoms", []):
            if "type" not in atom:
                raise ValueError(f"Atom without type in molecule '{molecule.name}'")
            molecule.add_atom(
                atom.get("name", atom["type"]),
                atom["type"],
                atom.get("charge", 0.0),
                atom.get("mass"),
            )
        for spec in entry.get("interactions", []):
            molecule.add_interaction(spec)
        top.add_molecule(molecule)
    return top


def read_topology(filename):
    """Read a YAML topology file."""
    with open(filename, "r") as f:
        data = yaml.safe_load(f)
    return topology_from_dict(data)
