import pytest
import numpy as np

from pydynamo.topology import (
    Topology,
    MoleculeTemplate,
    read_topology,
    topology_from_dict,
)
from pydynamo.forcefield import ForceField, BondHarmonic, LJPair


def two_molecule_topology():
    top = Topology(combination_rule="geom")
    top.add_atomtype("A", "C", 12.0, 0.3, 0.4)
    top.add_atomtype("B", "O", 16.0, 0.5, 0.9)

    one = MoleculeTemplate("one", nmols=1)
    for name in ("A1", "A2", "A3"):
        one.add_atom(name, "A")
    one.add_interaction("bond_harm 1 2 100.0 0.15")
    top.add_molecule(one)

    two = MoleculeTemplate("two", nmols=10)
    two.add_atom("B1", "B", charge=-0.8)
    two.add_atom("A1", "A", charge=0.4)
    two.add_atom("A2", "A", charge=0.4, mass=1.0)
    two.add_interaction("bond_harm 2 3 200.0 0.1")
    two.add_interaction("lj_pair 1 3")
    top.add_molecule(two)
    return top


def test_replication_offsets():
    top = two_molecule_topology()
    assert top.natoms == 33
    ff = ForceField.from_topology(top)
    assert ff.count() == {"bonds": 11, "angles": 0, "dihedrals": 0, "pairs": 10}
    assert ff.bonds[0] == BondHarmonic(100.0, 0.15, (0, 1))
    # local (2,3) of the last replica of "two"
    assert ff.bonds[-1].atoms == (31, 32)
    assert ff.bonds[1].atoms == (4, 5)
    assert ff.pairs[-1].atoms == (30, 32)


def test_derived_lj_pair_from_atomtypes():
    top = two_molecule_topology()
    ff = ForceField.from_topology(top)
    pair = ff.pairs[0]
    assert isinstance(pair, LJPair)
    assert np.isclose(pair.v, np.sqrt(0.5 * 0.3))
    assert np.isclose(pair.w, np.sqrt(0.9 * 0.4))


def test_atoms_flattening():
    top = two_molecule_topology()
    atoms = top.atoms()
    assert [a.index for a in atoms] == list(range(33))
    assert atoms[3].molecule == "two" and atoms[3].resnum == 2
    assert atoms[-1].resnum == 11
    masses = top.masses()
    assert masses[0] == 12.0 and masses[3] == 16.0 and masses[5] == 1.0
    assert np.isclose(top.charges().sum(), 0.0)
    assert top.elements()[:4] == ["C", "C", "C", "O"]


def test_unknown_atomtype():
    top = Topology()
    mol = MoleculeTemplate("m")
    mol.add_atom("X1", "X")
    top.add_molecule(mol)
    with pytest.raises(ValueError):
        top.atoms()


def test_unknown_keyword_is_fatal():
    top = two_molecule_topology()
    top.molecules[0].add_interaction("morse 1 2 1.0 1.0 1.0")
    with pytest.raises(ValueError):
        ForceField.from_topology(top)


def test_local_index_beyond_molecule_is_fatal():
    top = two_molecule_topology()
    top.molecules[0].add_interaction("bond_harm 3 4 100.0 0.15")
    with pytest.raises(ValueError):
        ForceField.from_topology(top)


def test_unknown_combination_rule_is_fatal():
    top = two_molecule_topology()
    top.combination_rule = "mixed"
    with pytest.raises(ValueError):
        ForceField.from_topology(top)


def test_read_topology(test_data_dir):
    top = read_topology(test_data_dir / "butane.yaml")
    assert top.combination_rule == "LB"
    assert top.natoms == 4
    ff = ForceField.from_topology(top)
    assert ff.comb_rule == "LB"
    assert ff.count() == {"bonds": 3, "angles": 2, "dihedrals": 1, "pairs": 1}
    pair = ff.pairs[0]
    assert pair.atoms == (0, 3)
    assert np.isclose(pair.v, 0.375)
    assert np.isclose(pair.w, 0.8148)


def test_topology_from_dict_errors():
    with pytest.raises(ValueError):
        topology_from_dict(["not", "a", "mapping"])
    with pytest.raises(ValueError):
        topology_from_dict({"atomtypes": {"A": {"mass": 1.0}}})
    with pytest.raises(ValueError):
        topology_from_dict({"molecules": [{"atoms": []}]})
