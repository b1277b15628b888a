"""Running parameters of the detections assembled by the linker."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass

KILOBYTE = 1024.0
MEGABYTE = 1024.0 * 1024.0

# Bytes per detection: 8 integer fields, 9 floating-point fields, 1 flag byte.
_BYTES_PER_DETECTION = 8 * 8 + 9 * 8 + 1


class LinkerError(Exception):
    """Raised when the linker is asked for something it cannot provide."""


def _ieee_div(numerator: float, denominator: float) -> float:
    """Divide like IEEE 754 floating-point arithmetic, yielding NaN or infinity."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def _ieee_sqrt(value: float) -> float:
    if math.isnan(value) or value < 0:
        return math.nan
    return math.sqrt(value)


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive pixel bounding box of a detection."""

    x_min: int
    x_max: int
    y_min: int
    y_max: int
    z_min: int
    z_max: int


@dataclass(slots=True)
class Detection:
    """Parameters of a single detection, updated pixel by pixel."""

    label: int
    n_pix: int
    x_min: int
    x_max: int
    y_min: int
    y_max: int
    z_min: int
    z_max: int
    f_min: float
    f_max: float
    f_sum: float
    rel: float = 0.0
    flags: int = 0
    fill: float = 1.0
    m1: float = 0.0
    m2: float = 0.0
    m3: float = 0.0
    m4: float = 0.0

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox(
            self.x_min, self.x_max, self.y_min, self.y_max, self.z_min, self.z_max
        )

    def size(self, axis: int) -> int:
        """Return the extent in pixels along axis 0 (x), 1 (y) or 2 (z)."""
        if axis == 0:
            return self.x_max - self.x_min + 1
        if axis == 1:
            return self.y_max - self.y_min + 1
        if axis == 2:
            return self.z_max - self.z_min + 1
        raise LinkerError(f"Invalid axis selection ({axis}) in LinkerPar object.")

    def std(self) -> float:
        """Sample standard deviation of the pixel values (NaN for one pixel)."""
        return _ieee_sqrt(_ieee_div(self.m2, self.n_pix - 1.0))

    def skewness(self) -> float:
        """Skewness of the pixel values."""
        return _ieee_div(math.sqrt(self.n_pix) * self.m3, self.m2**1.5)

    def kurtosis(self) -> float:
        """Excess kurtosis of the pixel values."""
        return _ieee_div(self.n_pix * self.m4, self.m2 * self.m2) - 3.0

    def add_pixel(self, x: int, y: int, z: int, flux: float, flag: int) -> None:
        """Extend the detection by one pixel and update its statistics."""
        self.n_pix += 1
        self.x_min = min(self.x_min, x)
        self.x_max = max(self.x_max, x)
        self.y_min = min(self.y_min, y)
        self.y_max = max(self.y_max, y)
        self.z_min = min(self.z_min, z)
        self.z_max = max(self.z_max, z)
        self.f_max = max(self.f_max, flux)
        self.f_min = min(self.f_min, flux)
        self.f_sum += flux
        self.flags = (self.flags | flag) & 0xFF
        self.fill = self.n_pix / (self.size(0) * self.size(1) * self.size(2))

        n = self.n_pix
        delta = flux - self.m1
        delta_n = delta / n
        delta_n2 = delta_n * delta_n
        term1 = delta * delta_n * (n - 1)
        self.m1 += delta_n
        self.m4 += (
            term1 * delta_n2 * (n * n - 3 * n + 3)
            + 6.0 * delta_n2 * self.m2
            - 4.0 * delta_n * self.m3
        )
        self.m3 += term1 * delta_n * (n - 2) - 3.0 * delta_n * self.m2
        self.m2 += term1


class LinkerPar:
    """Ordered list of detections built up by the linker."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = bool(verbose)
        self._detections: list[Detection] = []

    def __len__(self) -> int:
        return len(self._detections)

    def __iter__(self) -> Iterator[Detection]:
        return iter(self._detections)

    def push(
        self, label: int, x: int, y: int, z: int, flux: float, flag: int = 0
    ) -> None:
        """Append a new single-pixel detection.

        Flags: 1 = spatial edge, 2 = spectral edge, 4 = blanked pixels,
        8 = other sources.
        """
        self._detections.append(
            Detection(
                label=label,
                n_pix=1,
                x_min=x,
                x_max=x,
                y_min=y,
                y_max=y,
                z_min=z,
                z_max=z,
                f_min=flux,
                f_max=flux,
                f_sum=flux,
                rel=0.0,
                flags=flag & 0xFF,
                fill=1.0,
                m1=flux,
            )
        )

    def pop(self) -> Detection:
        """Remove and return the most recently added detection."""
        if not self._detections:
            raise LinkerError("Failed to pop element from empty LinkerPar object.")
        return self._detections.pop()

    def _last(self) -> Detection:
        if not self._detections:
            raise LinkerError(
                "Failed to update LinkerPar object; list is currently empty."
            )
        return self._detections[-1]

    def update(
        self, x: int, y: int, z: int, flux: float, flag: int = 0
    ) -> None:
        """Add a pixel to the most recently added detection."""
        self._last().add_pixel(x, y, z, flux, flag)

    def update_flag(self, flag: int) -> None:
        """OR the given flag into the most recently added detection."""
        last = self._last()
        last.flags = (last.flags | flag) & 0xFF

    def detection(self, label: int) -> Detection:
        """Return the first detection carrying the given label."""
        for det in self._detections:
            if det.label == label:
                return det
        raise LinkerError("Label not found.")

    def get_obj_size(self, label: int, axis: int) -> int:
        """Return the extent of a detection along axis 0 (x), 1 (y) or 2 (z)."""
        if axis not in (0, 1, 2):
            raise LinkerError(f"Invalid axis selection ({axis}) in LinkerPar object.")
        return self.detection(label).size(axis)

    def get_npix(self, label: int) -> int:
        return self.detection(label).n_pix

    def get_flux(self, label: int) -> float:
        return self.detection(label).f_sum

    def get_rel(self, label: int) -> float:
        return self.detection(label).rel

    def get_label(self, index: int) -> int:
        """Return the label of the detection at the given position."""
        if not 0 <= index < len(self._detections):
            raise LinkerError("Index out of range. Cannot retrieve label.")
        return self._detections[index].label

    def get_bbox(self, label: int) -> BoundingBox:
        return self.detection(label).bbox

    def info(self) -> str:
        """Return a short report on the number of detections and memory use."""
        usage = float(len(self._detections) * _BYTES_PER_DETECTION)
        if usage < MEGABYTE:
            memory = f"{usage / KILOBYTE:.2f} kB"
        else:
            memory = f"{usage / MEGABYTE:.2f} MB"
        return "\n".join(
            [
                "Linker status:",
                f" - No. of objects:  {len(self._detections)}",
                f" - Memory usage:    {memory}",
            ]
        )