"""Source catalogues built from the detections assembled by the linker."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass, field

from srcfind.detections import Detection, LinkerPar
from srcfind.label_map import LabelMap


def _log10(value: float) -> float:
    """Base-10 logarithm following IEEE 754 rules for non-positive input."""
    if math.isnan(value) or value < 0.0:
        return math.nan
    if value == 0.0:
        return -math.inf
    return math.log10(value)


@dataclass(frozen=True)
class Parameter:
    """A named source parameter with its unit and UCD."""

    name: str
    value: int | float
    unit: str = ""
    ucd: str = ""


@dataclass
class Source:
    """A catalogue entry: an identifier and an ordered set of parameters."""

    identifier: str = ""
    parameters: dict[str, Parameter] = field(default_factory=dict)

    def add(self, name: str, value: int | float, unit: str = "", ucd: str = "") -> None:
        """Add a parameter, replacing any earlier parameter of the same name."""
        self.parameters[name] = Parameter(name, value, unit, ucd)

    def __getitem__(self, name: str) -> int | float:
        """Return the value of the named parameter."""
        try:
            return self.parameters[name].value
        except KeyError:
            raise KeyError(f"Source parameter '{name}' not found.") from None

    def __contains__(self, name: object) -> bool:
        return name in self.parameters

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self.parameters.values())

    def __len__(self) -> int:
        return len(self.parameters)


def _catalog_source(det: Detection, new_label: int, flux_unit: str) -> Source:
    src = Source(identifier=str(det.label))
    src.add("id", new_label, "", "meta.id")
    # Placeholders for the centroid, which is measured later on.
    src.add("x", 0.0, "pix", "pos.cartesian.x")
    src.add("y", 0.0, "pix", "pos.cartesian.y")
    src.add("z", 0.0, "pix", "pos.cartesian.z")
    src.add("x_min", det.x_min, "pix", "pos.cartesian.x;stat.min")
    src.add("x_max", det.x_max, "pix", "pos.cartesian.x;stat.max")
    src.add("y_min", det.y_min, "pix", "pos.cartesian.y;stat.min")
    src.add("y_max", det.y_max, "pix", "pos.cartesian.y;stat.max")
    src.add("z_min", det.z_min, "pix", "pos.cartesian.z;stat.min")
    src.add("z_max", det.z_max, "pix", "pos.cartesian.z;stat.max")
    src.add("n_pix", det.n_pix, "", "meta.number;instr.pixel")
    src.add("f_min", det.f_min, flux_unit, "phot.flux.density;stat.min")
    src.add("f_max", det.f_max, flux_unit, "phot.flux.density;stat.max")
    src.add("f_sum", det.f_sum, flux_unit, "phot.flux")
    src.add("rel", det.rel, "", "stat.probability")
    src.add("flag", det.flags, "", "meta.code.qual")
    src.add("fill", det.fill, "", "stat.filling")
    src.add("mean", det.m1, flux_unit, "phot.flux.density;stat.mean")
    src.add("std", det.std(), flux_unit, "phot.flux.density;stat.stdev")
    src.add("skew", det.skewness(), "", "stat.param")
    src.add("kurt", det.kurtosis(), "", "stat.param")
    return src


def make_catalog(
    linker: LinkerPar, label_filter: LabelMap | None = None, flux_unit: str = ""
) -> list[Source]:
    """Create a source catalogue from the detections of the linker.

    If ``label_filter`` is given and not empty, only detections whose label
    is a key of the filter are included, and their ``id`` is replaced by the
    mapped label. The identifier always keeps the original label.
    """
    if flux_unit is None:
        raise ValueError("Flux unit must be a string.")
    remove_unreliable = label_filter is not None and len(label_filter) > 0
    catalog: list[Source] = []
    for det in linker:
        if remove_unreliable:
            if det.label not in label_filter:
                continue
            new_label = label_filter.get_value(det.label)
        else:
            new_label = det.label
        catalog.append(_catalog_source(det, new_label, flux_unit))
    return catalog


def make_rel_catalogs(
    linker: LinkerPar, flux_unit: str = ""
) -> tuple[list[Source], list[Source]]:
    """Create catalogues of reliability parameters for inspection.

    Returns the catalogues of negative and of positive detections, in that
    order. A detection is negative if its summed flux is below zero.
    """
    if flux_unit is None:
        raise ValueError("Flux unit must be a string.")
    negative: list[Source] = []
    positive: list[Source] = []
    for det in linker:
        is_neg = det.f_sum < 0.0
        src = Source(identifier=f"{'neg' if is_neg else 'pos'}_{det.label}")
        src.add("id", det.label, "", "meta.id")
        src.add("x", (det.x_max + det.x_min) / 2.0, "pix", "pos.cartesian.x")
        src.add("y", (det.y_max + det.y_min) / 2.0, "pix", "pos.cartesian.y")
        src.add("z", (det.z_max + det.z_min) / 2.0, "pix", "pos.cartesian.z")
        src.add("nx", float(det.size(0)), "pix", "pos.cartesian.x;arith.diff")
        src.add("ny", float(det.size(1)), "pix", "pos.cartesian.y;arith.diff")
        src.add("nz", float(det.size(2)), "pix", "pos.cartesian.z;arith.diff")
        src.add("rel", det.rel, "", "stat.probability")

        sign = -1.0 if is_neg else 1.0
        peak = -det.f_min if is_neg else det.f_max
        src.add("log_f_peak", _log10(peak), flux_unit, "phot.flux.density;stat.max")
        src.add("log_f_sum", _log10(sign * det.f_sum), flux_unit, "phot.flux")
        src.add(
            "log_f_mean",
            _log10(sign * det.f_sum / det.n_pix),
            flux_unit,
            "phot.flux;stat.mean",
        )

        src.add("fill", det.fill, "", "stat.filling")
        src.add("std", det.std(), flux_unit, "phot.flux.density;stat.stdev")
        src.add("skew", det.skewness(), "", "stat.param")
        src.add("kurt", det.kurtosis(), "", "stat.param")

        (negative if is_neg else positive).append(src)
    return negative, positive