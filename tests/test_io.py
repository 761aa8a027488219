import numpy as np
import pytest
ak = pytest.importorskip("awkward")
uproot = pytest.importorskip("uproot")
pytest.importorskip("hist")
from higgs_jets.analysis import io
from higgs_jets.analysis.histograms import book_histograms
from higgs_jets.analysis.physics import FourVector
from higgs_jets.exceptions import AnalysisError, SourceError

class DummyTree:
    classname = "TTree"

class DummyFileNamed:
    # Mimic a ROOT file that has a 't3' TTree next to something else

    def __init__(self):
        self._store = {"t3": DummyTree(), "other": DummyTree()}
        self.file_path = "dummy.root"

    def keys(self):
        return list(self._store.keys())

    def __getitem__(self, key):
        return self._store[key]

    def classnames(self):
        return {name: obj.classname for name, obj in self._store.items()}

class DummyFileUnique:
    # Mimic a ROOT file with exactly one TTree at the top level

    def __init__(self):
        self._store = {"mytree;1": DummyTree()}
        self.file_path = "unique.root"

    def keys(self):
        return list(self._store.keys())

    def __getitem__(self, key):
        return self._store[key]

    def classnames(self):
        return {name: obj.classname for name, obj in self._store.items()}

class DummyDir:
    def __init__(self, children):
        self._children = children

    def keys(self):
        return list(self._children.keys())

    def __getitem__(self, key):
        return self._children[key]

class DummyFileNested:
    # Mimic a ROOT file where the TTree lives inside a directory

    def __init__(self, tree=None):
        self.file_path = "nested.root"
        self._store = {"dir1": DummyDir({})}
        if tree is not None:
            self._store = {
                "dir1": DummyDir({"subtree": tree}),
                "dir1/subtree": tree,
            }

    def keys(self):
        # Only top-level keys, like uproot
        return [k for k in self._store.keys() if "/" not in k]

    def __getitem__(self, key):
        return self._store[key]

    def classnames(self):
        # No top-level TTrees in this scenario
        return {}

def test_find_tree_prefers_named_tree():
    f = DummyFileNamed()
    assert io._find_tree(f) is f["t3"]

def test_find_tree_unique_ttree_via_classnames():
    f = DummyFileUnique()
    tree = io._find_tree(f)
    assert isinstance(tree, DummyTree)

def test_find_tree_nested_directory_search():
    tree = DummyTree()
    f = DummyFileNested(tree)
    assert io._find_tree(f) is tree

def test_find_tree_raises_source_error_when_missing():
    with pytest.raises(SourceError):
        io._find_tree(DummyFileNested())


def _ntuple_arrays():
    return ak.Array(
        {
            "nparticle": [3, 1],
            "kf": [[25, 21, 2], [21]],
            "px": [[0.0, 50.0, 20.0], [40.0]],
            "py": [[0.0, 0.0, 0.0], [0.0]],
            "pz": [[0.0, 10.0, -5.0], [0.0]],
            "E": [[125.0, 51.0, 21.0], [40.0]],
            "weight2": [2.0, -0.5],
        }
    )


def test_events_from_arrays_builds_records_in_order():
    records = list(io.events_from_arrays(_ntuple_arrays(), first_entry=10))

    assert [r.entry for r in records] == [10, 11]
    assert [r.weight for r in records] == [2.0, -0.5]
    assert [p.pid for p in records[0].particles] == [25, 21, 2]
    assert records[0].particles[1].momentum == FourVector(50.0, 0.0, 10.0, 51.0)
    assert len(records[1].particles) == 1


def test_events_from_arrays_enforces_capacity():
    with pytest.raises(SourceError):
        list(io.events_from_arrays(_ntuple_arrays(), max_particles=2))

    # the check can be switched off
    assert len(list(io.events_from_arrays(_ntuple_arrays(), max_particles=None))) == 2


def test_events_from_arrays_short_branches_is_source_error():
    arrays = ak.Array(
        {
            "nparticle": [3],
            "kf": [[25]],
            "px": [[0.0]],
            "py": [[0.0]],
            "pz": [[0.0]],
            "E": [[125.0]],
            "weight2": [1.0],
        }
    )

    with pytest.raises(SourceError):
        list(io.events_from_arrays(arrays))


def test_events_from_arrays_missing_weight_is_source_error():
    with pytest.raises(SourceError):
        list(io.events_from_arrays(_ntuple_arrays(), weight_branch="weight3"))


def test_iter_events_reads_written_ntuple(tmp_path):
    arrays = _ntuple_arrays()
    path = str(tmp_path / "ntuple.root")
    with uproot.recreate(path) as fout:
        fout["t3"] = {
            "nparticle": np.asarray(arrays["nparticle"], dtype=np.int32),
            "kf": ak.values_astype(arrays["kf"], np.int32),
            "px": arrays["px"],
            "py": arrays["py"],
            "pz": arrays["pz"],
            "E": arrays["E"],
            "weight2": np.asarray(arrays["weight2"]),
        }

    records = list(io.iter_events([path, path]))

    # entries are numbered across files
    assert [r.entry for r in records] == [0, 1, 2, 3]
    assert records[2].particles[0].pid == 25
    assert records[3].weight == -0.5


def test_iter_events_missing_file_is_source_error(tmp_path):
    with pytest.raises(SourceError):
        list(io.iter_events([str(tmp_path / "missing.root")]))


def test_write_histograms_round_trip(tmp_path):
    hs = book_histograms()
    hs.fill("H_pT", 100.0, 2.0)
    hs.fill("Njets_excl", 2, 2.0)
    hs.fill("Njets_incl", [2, 1, 0], 2.0)
    hs.finalize()
    path = str(tmp_path / "out.root")

    io.write_histograms(path, hs)

    with uproot.open(path) as f:
        written = {key.split(";")[0] for key in f.keys()}
        assert written == set(hs.names())
        h_pt = f["H_pT"]
        assert np.allclose(h_pt.values(), hs["H_pT"].values())
        assert np.allclose(h_pt.axis().edges(), hs["H_pT"].edges)
        assert np.allclose(f["Njets_incl"].values(), [2.0, 2.0, 2.0, 0.0, 0.0])
        assert f["Njets_incl"].member("fEntries") == 1
        assert f["Njets_excl"].member("fEntries") == 1
        assert h_pt.member("fTsumwx") == pytest.approx(200.0)
        assert h_pt.member("fTsumwx2") == pytest.approx(20000.0)


def test_write_histograms_requires_closed_set(tmp_path):
    with pytest.raises(AnalysisError):
        io.write_histograms(str(tmp_path / "out.root"), book_histograms())
