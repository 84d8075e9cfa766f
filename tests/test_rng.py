import itertools

import pytest

from bafikit.rng import LcgRng


def test_same_seed_same_sequence():
    a = LcgRng(42)
    b = LcgRng(42)
    assert [a.next() for _ in range(10)] == [b.next() for _ in range(10)]


def test_different_seeds_differ():
    a = LcgRng(1)
    b = LcgRng(2)
    assert [a.next() for _ in range(5)] != [b.next() for _ in range(5)]


def test_values_fit_in_64_bits():
    rng = LcgRng(123456789)
    assert all(0 <= v < 2**64 for v in itertools.islice(rng, 100))


def test_range_stays_in_bounds():
    rng = LcgRng(7)
    values = [rng.range(0, 255) for _ in range(1000)]
    assert all(0 <= v < 255 for v in values)
    assert len(set(values)) > 50


def test_range_with_offset():
    rng = LcgRng(99)
    assert all(10 <= rng.range(10, 12) < 12 for _ in range(100))


def test_range_rejects_empty_interval():
    with pytest.raises(ValueError):
        LcgRng(1).range(5, 5)
    with pytest.raises(ValueError):
        LcgRng(1).range(6, 5)


def test_global_generators_share_state():
    first = LcgRng.global_rng()
    second = LcgRng.global_rng()
    a = first.next()
    b = second.next()
    assert a != b
    assert first.state == 0 and second.state == 0