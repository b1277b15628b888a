import math
import statistics

import pytest

from srcfind.catalog import Parameter, Source, make_catalog, make_rel_catalogs
from srcfind.detections import LinkerPar
from srcfind.label_map import LabelMap


def _linker():
    linker = LinkerPar()
    linker.push(1, 5, 6, 7, 2.0, 1)
    linker.update(6, 4, 7, 3.0, 2)
    linker.update(5, 6, 9, 7.0, 0)
    linker.push(2, 0, 0, 0, -4.0, 0)
    linker.update(1, 0, 0, -1.0, 0)
    linker.push(3, 10, 10, 10, 5.0, 0)
    return linker


def test_source_add_and_getitem():
    src = Source(identifier="a")
    src.add("f_sum", 3.5, "Jy", "phot.flux")
    assert src["f_sum"] == 3.5
    assert "f_sum" in src
    assert src.parameters["f_sum"] == Parameter("f_sum", 3.5, "Jy", "phot.flux")
    assert len(src) == 1


def test_source_missing_parameter_raises():
    with pytest.raises(KeyError):
        Source()["nothing"]


def test_catalog_parameter_order():
    cat = make_catalog(_linker(), None, "Jy")
    names = [p.name for p in cat[0]]
    assert names == [
        "id", "x", "y", "z", "x_min", "x_max", "y_min", "y_max", "z_min",
        "z_max", "n_pix", "f_min", "f_max", "f_sum", "rel", "flag", "fill",
        "mean", "std", "skew", "kurt",
    ]


def test_catalog_values_without_filter():
    cat = make_catalog(_linker(), None, "Jy")
    assert [s.identifier for s in cat] == ["1", "2", "3"]
    src = cat[0]
    assert src["id"] == 1
    assert (src["x_min"], src["x_max"]) == (5, 6)
    assert (src["y_min"], src["y_max"]) == (4, 6)
    assert (src["z_min"], src["z_max"]) == (7, 9)
    assert src["n_pix"] == 3
    assert src["f_min"] == 2.0
    assert src["f_max"] == 7.0
    assert src["f_sum"] == 12.0
    assert src["flag"] == 3
    assert src["mean"] == pytest.approx(4.0)
    assert src["std"] == pytest.approx(statistics.stdev([2.0, 3.0, 7.0]))
    assert src.parameters["f_sum"].unit == "Jy"
    assert src.parameters["f_sum"].ucd == "phot.flux"
    assert src.parameters["id"].ucd == "meta.id"


def test_single_pixel_std_is_nan():
    cat = make_catalog(_linker(), None, "Jy")
    assert cat[2]["n_pix"] == 1
    assert str(float(cat[2]["std"])) == "nan"


def test_empty_filter_keeps_everything():
    cat = make_catalog(_linker(), LabelMap(), "Jy")
    assert [s["id"] for s in cat] == [1, 2, 3]


def test_filter_removes_and_relabels():
    label_filter = LabelMap()
    label_filter.push(3, 1)
    label_filter.push(1, 2)
    cat = make_catalog(_linker(), label_filter, "Jy")
    assert [s.identifier for s in cat] == ["1", "3"]
    assert [s["id"] for s in cat] == [2, 1]


def test_rel_catalogs_split_by_sign():
    neg, pos = make_rel_catalogs(_linker(), "Jy")
    assert [s.identifier for s in neg] == ["neg_2"]
    assert [s.identifier for s in pos] == ["pos_1", "pos_3"]


def test_rel_catalog_values():
    neg, pos = make_rel_catalogs(_linker(), "Jy")
    n = neg[0]
    assert n["x"] == 0.5
    assert n["nx"] == 2.0
    assert n["log_f_peak"] == pytest.approx(math.log10(4.0))
    assert n["log_f_sum"] == pytest.approx(math.log10(5.0))
    assert n["log_f_mean"] == pytest.approx(math.log10(2.5))
    p = pos[0]
    assert p["z"] == 8.0
    assert p["nz"] == 3.0
    assert p["log_f_peak"] == pytest.approx(math.log10(7.0))
    assert p["log_f_sum"] == pytest.approx(math.log10(12.0))
    assert p.parameters["log_f_mean"].ucd == "phot.flux;stat.mean"


def test_rel_catalogs_empty_linker():
    assert make_rel_catalogs(LinkerPar(), "Jy") == ([], [])