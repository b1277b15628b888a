"""Reliability of detections from kernel density estimation in parameter space."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from srcfind.detections import Detection, LinkerError, LinkerPar
from srcfind.kde import calculate_skellam, covariance
from srcfind.relpar import RelPar

logger = logging.getLogger(__name__)

_THRESHOLD_WARNING = 50
_DEFAULT_SCALE_KERNEL = 0.4
_AUTOKERNEL_START = 0.1
_AUTOKERNEL_STEP = 0.02


@dataclass
class ReliabilityResult:
    """Outcome of a reliability measurement.

    ``covariance`` is the kernel covariance matrix (already scaled by the
    square of the final kernel scale factor), ``scale_kernel`` the scale
    factor actually used and ``skellam`` the Skellam array, if requested.
    """

    covariance: NDArray[np.float64]
    scale_kernel: float
    skellam: NDArray[np.float64] | None = None


def _log10(value: float) -> float:
    if math.isnan(value) or value < 0.0:
        return math.nan
    if value == 0.0:
        return -math.inf
    return math.log10(value)


def parameter_value(detection: Detection, par: RelPar | str | int) -> float:
    """Return the value of a reliability parameter for one detection.

    Flux-based parameters of negative detections (summed flux below zero)
    are taken from the mirrored fluxes, so that positive and negative
    detections share the same parameter space.
    """
    par = RelPar.parse(par)
    is_neg = detection.f_sum < 0.0
    sign = -1.0 if is_neg else 1.0
    if par is RelPar.PEAK:
        return _log10(-detection.f_min if is_neg else detection.f_max)
    if par is RelPar.SUM:
        return _log10(sign * detection.f_sum)
    if par is RelPar.MEAN:
        return _log10(sign * detection.f_sum / detection.n_pix)
    if par is RelPar.CHAN:
        return float(detection.size(2))
    if par is RelPar.PIX:
        return _log10(float(detection.n_pix))
    if par is RelPar.FILL:
        return _log10(detection.fill)
    if par is RelPar.STD:
        return detection.std()
    if par is RelPar.SKEW:
        return detection.skewness()
    return detection.kurtosis()


def _points(detections: Sequence[Detection], pars: Sequence[RelPar]) -> NDArray[np.float64]:
    return np.array(
        [[parameter_value(det, par) for par in pars] for det in detections],
        dtype=float,
    ).reshape(len(detections), len(pars))


def _invert(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    message = (
        "Covariance matrix is not invertible; cannot measure reliability. "
        "Ensure that there are enough negative detections."
    )
    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError:
        raise LinkerError(message) from None
    if not np.all(np.isfinite(inverse)):
        raise LinkerError(message)
    return inverse


def _kernel_sum(
    covar_inv: NDArray[np.float64], points: NDArray[np.float64], centre: NDArray[np.float64]
) -> float:
    diff = points - centre
    quad = np.einsum("ij,jk,ik->i", diff, covar_inv, diff)
    return float(np.exp(-0.5 * quad).sum())


def _excluded(det: Detection, rel_cat: Sequence[tuple[float, float]]) -> bool:
    return any(
        det.x_min <= x <= det.x_max and det.y_min <= y <= det.y_max
        for x, y in rel_cat
    )


def reliability(
    linker: LinkerPar,
    rel_par_space: Iterable[RelPar | str | int],
    scale_kernel: float = _DEFAULT_SCALE_KERNEL,
    fmin: float = 15.0,
    minpix: int = 0,
    rel_cat: Iterable[tuple[float, float]] | None = None,
    want_skellam: bool = False,
    autokernel: bool = False,
    iterations: int = 30,
    tolerance: float = 0.05,
) -> ReliabilityResult:
    """Measure the reliability of all positive detections of the linker.

    The density of positive (P) and negative (N) detections is estimated
    with a Gaussian kernel whose covariance is that of the negative
    detections scaled by ``scale_kernel``; each positive detection above
    ``fmin`` (in ``sum / sqrt(n_pix)``) with more than ``minpix`` pixels
    gets ``rel = (P - N) / P``, or 0 if N exceeds P. Negative detections
    whose (x, y) bounding box contains a position of ``rel_cat`` are left
    out. With ``autokernel`` the scale factor is searched iteratively until
    the absolute median of the Skellam array drops to ``tolerance``.
    """
    if len(linker) == 0:
        raise LinkerError("No sources left after linking. Cannot proceed.")
    if autokernel and not want_skellam:
        raise ValueError("With kernel auto-scaling enabled, the Skellam array must be requested.")
    if scale_kernel <= 0.0:
        logger.warning("Kernel scale factor is non-positive; using default of 0.4 instead.")
        scale_kernel = _DEFAULT_SCALE_KERNEL

    pars = [RelPar.parse(par) for par in rel_par_space]
    if not pars:
        raise ValueError("Empty parameter space for reliability measurement.")
    dim = len(pars)
    logger.info("Using %dD parameter space:", dim)
    for par in pars:
        logger.info(" - %s", par.short_name())

    detections = list(reversed(list(linker)))
    n_neg = sum(1 for det in detections if det.f_sum < 0.0)
    n_pos = sum(1 for det in detections if det.f_sum > 0.0)
    if not n_neg:
        raise LinkerError("No negative sources found. Cannot proceed.")
    if not n_pos:
        raise LinkerError("No positive sources found. Cannot proceed.")
    logger.info("Found %d positive and %d negative sources.", n_pos, n_neg)
    if n_neg < _THRESHOLD_WARNING:
        logger.warning(
            "Only %d negative %s found. Reliability calculation may not be accurate.",
            n_neg,
            "detections" if n_neg > 1 else "detection",
        )

    catalogue = [(float(x), float(y)) for x, y in rel_cat] if rel_cat is not None else []

    negatives: list[Detection] = []
    positives: list[Detection] = []
    for det in detections:
        if det.f_sum < 0.0:
            if catalogue and _excluded(det, catalogue):
                continue
            if not det.f_min < 0.0:
                raise LinkerError("Non-negative minimum assigned to source with negative flux!")
            negatives.append(det)
        elif det.f_sum > 0.0:
            if not det.f_max > 0.0:
                raise LinkerError("Non-positive maximum assigned to source with positive flux!")
            positives.append(det)

    if len(negatives) < n_neg:
        logger.info(
            "Excluding %d out of %d negative sources from reliability analysis.",
            n_neg - len(negatives),
            n_neg,
        )
        if not negatives:
            raise LinkerError("No negative sources found. Cannot proceed.")
        if len(negatives) < _THRESHOLD_WARNING:
            logger.warning(
                "Only %d negative detections found. Reliability calculation may not be accurate.",
                len(negatives),
            )
    else:
        logger.info("Retaining all negative detections.")

    par_neg = _points(negatives, pars)
    par_pos = _points(positives, pars)

    covar = covariance(par_neg).reshape(dim, dim)
    skellam: NDArray[np.float64] | None = None

    if not autokernel:
        covar = covar * scale_kernel**2
        covar_inv = _invert(covar)
        if want_skellam:
            skellam = calculate_skellam(covar_inv, par_pos, par_neg, 1.0)
    else:
        logger.info("Using auto-kernel feature.")
        iteration = 0
        scale = _AUTOKERNEL_START
        scale_old = 1.0
        skellam_med = 1e5
        scale_default = scale_kernel
        covar_inv = None
        while iteration < iterations and skellam_med > tolerance:
            covar = covar * (scale / scale_old) ** 2
            covar_inv = _invert(covar)
            skellam = calculate_skellam(covar_inv, par_pos, par_neg, 1.0)
            skellam_med = abs(float(np.median(skellam)))

            scale_old = scale
            if skellam_med < 10.0 * tolerance:
                scale += 2.0 * _AUTOKERNEL_STEP
            elif skellam_med < 30.0 * tolerance:
                scale += 5.0 * _AUTOKERNEL_STEP
            elif skellam_med < 50.0 * tolerance:
                scale += 10.0 * _AUTOKERNEL_STEP
            else:
                scale += _AUTOKERNEL_STEP
            iteration += 1
            logger.info("  Iter. %2d: kernel = %.3f, median = %.3f", iteration, scale_old, skellam_med)

        if skellam_med <= tolerance:
            scale_kernel = scale_old
            logger.info("Converged to scale_kernel = %.3f after %d iterations.", scale_old, iteration)
        else:
            scale_kernel = scale_default
            covar = covar * (scale_kernel / scale_old) ** 2
            covar_inv = _invert(covar)
            skellam = calculate_skellam(covar_inv, par_pos, par_neg, 1.0)
            logger.warning(
                "Auto-kernel failed to converge, defaulting to kernel scale of %.3f.",
                scale_kernel,
            )

    fmin_squared = fmin * fmin
    for det, centre in zip(positives, par_pos):
        if det.f_sum * det.f_sum / det.n_pix > fmin_squared and det.n_pix > minpix:
            pdf_neg = _kernel_sum(covar_inv, par_neg, centre)
            pdf_pos = _kernel_sum(covar_inv, par_pos, centre)
            det.rel = (pdf_pos - pdf_neg) / pdf_pos if pdf_pos > pdf_neg else 0.0

    return ReliabilityResult(covariance=covar, scale_kernel=scale_kernel, skellam=skellam)