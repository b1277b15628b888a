import math

import numpy as np
import pytest

from srcfind.kde import calculate_skellam, covariance, prob_density

R_VALUES = [
    [0.8806373, -1.95192098, 0.18689515],
    [0.2047431, -0.05791818, 1.62288586],
    [1.9609153, -0.69923266, 0.64002178],
    [-1.6226039, 0.04363565, -1.43477284],
    [-0.3895771, -1.40679746, -0.07397084],
    [2.3732863, -0.66334044, -1.54496257],
    [-0.7292960, -0.65010853, -0.71494086],
    [0.1044472, -0.85997308, -0.70125238],
    [-0.4302851, -0.77777749, 1.03645629],
    [-1.7177167, -1.13172392, 0.74644620],
    [-0.1734137, 0.19126767, 0.40525712],
    [1.4433185, -0.24667962, -0.29331336],
    [0.9023200, 0.43797946, 0.99681764],
    [-0.5091546, 1.48462769, 1.11789176],
    [0.1317887, -0.84363408, -0.77479099],
    [-0.2870769, -1.36878009, 0.30097708],
    [-0.9766067, 0.07478984, -1.28814253],
    [-0.3386619, -0.04540933, 1.76817654],
    [1.2044417, -0.01799294, 0.36824827],
    [-0.5093679, -0.57040164, 0.84257331],
]

PAR_POS = [
    [0.479672, 2.638437, 0.123890],
    [1.229855, 3.960470, 0.426698],
    [0.516049, 2.820342, 0.020313],
    [1.623343, 5.079663, 0.469003],
    [0.560312, 2.006760, 0.404700],
    [0.594624, 2.137338, 0.095945],
    [0.493680, 1.715739, 0.373316],
    [0.626984, 2.137091, 0.421087],
    [0.583238, 2.228457, 0.246186],
    [1.197869, 4.108119, 0.119605],
]

PAR_NEG = [
    [0.565177, 1.984872, 0.268868],
    [0.650231, 2.531438, 0.183133],
    [0.635017, 1.838638, 0.476910],
    [0.608428, 2.498141, 0.128925],
    [0.502900, 2.568780, 0.013686],
    [0.598281, 2.816818, 0.037221],
    [0.591695, 3.119744, -0.074493],
    [0.542738, 3.077445, -0.055454],
    [0.516489, 2.914339, -0.076000],
    [0.502908, 2.093995, 0.267920],
    [0.657908, 3.315991, 0.020424],
    [0.673569, 3.199827, 0.014284],
    [0.627123, 3.177527, -0.085161],
    [0.464713, 1.907204, 0.217008],
    [0.613266, 2.393899, 0.270048],
    [0.631925, 2.314303, 0.405818],
    [0.541647, 3.541295, -0.095594],
    [0.595598, 2.631868, 0.090289],
]


def test_covariance_matches_r():
    covar = covariance(R_VALUES)
    expected = [
        [1.19512605, -0.05807801, -0.04001114],
        [-0.05807801, 0.58313571, 0.15017211],
        [-0.04001114, 0.15017211, 0.97185709],
    ]
    assert covar.shape == (3, 3)
    for row in range(3):
        for col in range(3):
            assert abs(covar[row, col] - expected[row][col]) < 0.1


def test_scaled_covariance():
    scale_kernel = 0.4
    covar = covariance(PAR_NEG) * scale_kernel * scale_kernel
    expected = [
        [0.0005535, 0.0011550, 0.0002126],
        [0.0011550, 0.0400061, -0.0118386],
        [0.0002126, -0.0118386, 0.0046538],
    ]
    for row in range(3):
        for col in range(3):
            assert abs(covar[row, col] - expected[row][col]) < 0.000001


def test_covariance_is_symmetric():
    covar = covariance(R_VALUES)
    assert np.allclose(covar, covar.T)


def test_covariance_of_identical_points_is_zero():
    covar = covariance([[1.0, 2.0], [1.0, 2.0], [1.0, 2.0]])
    assert np.array_equal(covar, np.zeros((2, 2)))


def test_covariance_empty_raises():
    with pytest.raises(ValueError):
        covariance(np.empty((0, 3)))


def test_skellam_array():
    scale_kernel = 0.4
    covar = covariance(PAR_NEG) * scale_kernel * scale_kernel
    covar_inv = np.linalg.inv(covar)
    skellam = calculate_skellam(covar_inv, PAR_POS, PAR_NEG, 1.0)
    expected = [
        -0.842377, -1.084190, -0.963147, -1.291496, -1.096478, -1.431883,
        -1.201856, -0.761948, -1.109428, -0.779085, -1.010966, -1.017142,
        -1.100934, -0.993204, -0.884591, -0.732973, -0.999984, -1.435549,
    ]
    assert len(skellam) == len(PAR_NEG)
    for got, want in zip(skellam, expected):
        assert got - want < 0.0001
        assert abs(got - want) < 0.0001


def test_skellam_accepts_flat_sequences():
    covar_inv = np.linalg.inv(covariance(PAR_NEG) * 0.16)
    flat_pos = [v for row in PAR_POS for v in row]
    flat_neg = [v for row in PAR_NEG for v in row]
    assert np.allclose(
        calculate_skellam(covar_inv, flat_pos, flat_neg),
        calculate_skellam(covar_inv, PAR_POS, PAR_NEG),
    )


def test_skellam_zero_when_positive_equals_negative():
    covar_inv = np.eye(2)
    points = [[0.0, 0.0], [1.0, 0.5], [-0.3, 2.0]]
    skellam = calculate_skellam(covar_inv, points, points)
    assert np.allclose(skellam, 0.0)


def test_skellam_single_negative_without_positives():
    skellam = calculate_skellam(np.eye(1), np.empty((0, 1)), [[3.0]])
    assert skellam.tolist() == [-1.0]


def test_skellam_bad_length_raises():
    with pytest.raises(ValueError):
        calculate_skellam(np.eye(3), [1.0, 2.0], PAR_NEG)


def test_prob_density_at_origin_equals_scale():
    assert prob_density(np.eye(3), [0.0, 0.0, 0.0], 2.5) == 2.5


def test_prob_density_unit_distance():
    value = prob_density([[1.0]], [1.0], 1.0)
    assert math.isclose(value, math.exp(-0.5))
    assert math.isclose(value, 0.6065306597126334)


def test_prob_density_mismatched_vector_raises():
    with pytest.raises(ValueError):
        prob_density(np.eye(2), [1.0, 2.0, 3.0], 1.0)


def test_prob_density_non_square_matrix_raises():
    with pytest.raises(ValueError):
        prob_density([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], [1.0, 2.0], 1.0)