"""
Tests for the multi-index odometer and the four index schemes.
"""

import pytest

from spharmx._src.indexing import IndexScheme, MultiIndexOdometer, walk

# ---------------------------------------------------------------------------
# MultiIndexOdometer
# ---------------------------------------------------------------------------


def _ragged(prefix):
    sizes = {(): 3, (0,): 2, (1,): 0, (2,): 1}
    return sizes[prefix]


def test_odometer_innermost_first():
    cursor = MultiIndexOdometer.begin(lambda p: 2, 3)
    positions = list(cursor)
    assert positions[:3] == [(0, 0, 0), (0, 0, 1), (0, 1, 0)]
    assert len(positions) == 8
    assert positions == sorted(positions)


def test_odometer_skips_empty_levels():
    assert list(MultiIndexOdometer.begin(_ragged, 2)) == [(0, 0), (0, 1), (2, 0)]


def test_odometer_begin_end_range():
    begin = MultiIndexOdometer.begin(_ragged, 2)
    end = MultiIndexOdometer.end(_ragged, 2)
    assert end.position == (3, 0)
    assert end.exhausted
    assert list(walk(begin, end)) == [(0, 0), (0, 1), (2, 0)]

    cursor = begin.copy()
    for _ in range(3):
        assert cursor != end
        cursor.advance()
    assert cursor == end


def test_odometer_advance_on_end_is_noop():
    end = MultiIndexOdometer.end(_ragged, 2)
    assert end.advance().position == (3, 0)


def test_odometer_copy_is_independent():
    cursor = MultiIndexOdometer.begin(lambda p: 4, 1)
    other = cursor.copy().advance()
    assert cursor.position == (0,)
    assert other.position == (1,)


def test_odometer_invalid_depth():
    with pytest.raises(ValueError):
        MultiIndexOdometer(lambda p: 1, 0)


# ---------------------------------------------------------------------------
# IndexScheme
# ---------------------------------------------------------------------------


def test_scalar_scheme_order():
    scheme = IndexScheme("scalar", 2)
    assert scheme.indices() == (
        (0, 0),
        (1, -1),
        (1, 0),
        (1, 1),
        (2, -2),
        (2, -1),
        (2, 0),
        (2, 1),
        (2, 2),
    )
    assert len(scheme) == 9


def test_radial_scheme_real_data():
    scheme = IndexScheme("radial", 2, real_data=True)
    keys = scheme.indices()
    assert keys[:4] == ((1, 0, 0), (1, 1, 0), (1, 1, 1), (1, 2, 0))
    assert all(m >= 0 for _, _, m in keys)
    assert len(scheme) == len(keys) == 2 * (1 + 2 + 3)


def test_radial_scheme_full_orders():
    scheme = IndexScheme("radial", 3)
    keys = scheme.indices()
    assert len(keys) == 3 * 16
    assert keys[0] == (1, 0, 0) and keys[-1] == (3, 3, 3)


def test_vector_scheme_order():
    scheme = IndexScheme("vector", 1)
    keys = scheme.indices()
    assert keys[:6] == (
        (0, -1, 0),
        (0, 0, 0),
        (0, 1, 0),
        (1, -1, -1),
        (1, -1, 0),
        (1, -1, 1),
    )
    assert len(scheme) == len(keys) == 12


def test_vector_radial_scheme_length():
    scheme = IndexScheme("vector_radial", 2)
    assert len(scheme.indices()) == len(scheme) == 2 * 3 * 9
    assert scheme.depth == 4


@pytest.mark.parametrize(
    "family, real_data",
    [
        ("scalar", False),
        ("radial", False),
        ("radial", True),
        ("vector", False),
        ("vector_radial", False),
    ],
)
def test_offsets_follow_enumeration(family, real_data):
    scheme = IndexScheme(family, 3, real_data=real_data)
    offsets = [scheme.offset(key) for key in scheme]
    assert offsets == list(range(len(scheme)))


def test_iteration_matches_indices():
    scheme = IndexScheme("vector", 2)
    assert tuple(scheme) == scheme.indices()


def test_membership_and_key_errors():
    scheme = IndexScheme("scalar", 2)
    assert (2, -2) in scheme
    assert (3, 0) not in scheme
    assert (1, 2) not in scheme
    assert (1, 0, 0) not in scheme
    with pytest.raises(KeyError):
        scheme.offset((3, 0))

    radial = IndexScheme("radial", 2, real_data=True)
    assert (1, 1, -1) not in radial
    assert (0, 1, 0) not in radial


def test_empty_radial_scheme():
    scheme = IndexScheme("radial", 0)
    assert len(scheme) == 0
    assert scheme.indices() == ()


def test_unknown_family():
    with pytest.raises(ValueError):
        IndexScheme("tensor", 2)
