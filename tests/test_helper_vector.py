import math
import re

import pytest

from shared.helper.HelperVector import compute_embedding_checksum, fit_dimensions, is_valid_vector, zero_vector


def test_zero_vector():
    assert zero_vector(3) == [0.0, 0.0, 0.0]


@pytest.mark.parametrize("vector, valid", [
    ([0.1, 2, -3.5], True),
    ((1.0,), True),
    ([], False),
    (None, False),
    ("0.1,0.2", False),
    ([0.1, "x"], False),
    ([True, 0.2], False),
    ([float("nan")], False),
    ([float("inf")], False),
])
def test_is_valid_vector(vector, valid):
    assert is_valid_vector(vector) is valid


def test_fit_dimensions_pads_short_vectors():
    assert fit_dimensions([1, 2], 4) == [1.0, 2.0, 0.0, 0.0]


def test_fit_dimensions_keeps_matching_vectors():
    assert fit_dimensions([0.5, 0.25], 2) == [0.5, 0.25]


def test_fit_dimensions_pools_and_normalises_long_vectors():
    fitted = fit_dimensions([1.0, 3.0, 2.0, 2.0, 0.0, 0.0], 3)

    # buckets [1,3] [2,2] [0,0] -> means [2,2,0] -> normalised
    assert fitted == pytest.approx([1 / math.sqrt(2), 1 / math.sqrt(2), 0.0])
    assert math.sqrt(sum(v * v for v in fitted)) == pytest.approx(1.0)


def test_fit_dimensions_uneven_buckets_use_every_component():
    fitted = fit_dimensions([float(i) for i in range(1536)], 384)
    assert len(fitted) == 384
    assert all(b >= a for a, b in zip(fitted, fitted[1:]))


def test_checksum_is_sha256_hex_and_deterministic():
    checksum = compute_embedding_checksum([0.1, 0.2, 0.3])

    assert re.fullmatch(r"[0-9a-f]{64}", checksum)
    assert checksum == compute_embedding_checksum([0.1, 0.2, 0.3])
    assert checksum != compute_embedding_checksum([0.1, 0.2, 0.31])


def test_checksum_treats_ints_and_floats_alike():
    assert compute_embedding_checksum([1, 0]) == compute_embedding_checksum([1.0, 0.0])
