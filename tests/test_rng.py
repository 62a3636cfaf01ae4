import pytest

from dorykernel.rng import LinearCongruential, MultiplyWithCarry, memcheck, satoi


def test_lcg_default_seed_sequence():
    gen = LinearCongruential()
    assert [gen.rand() for _ in range(3)] == [16838, 5758, 10113]


def test_lcg_seed_restarts_sequence():
    gen = LinearCongruential(1)
    first = [gen.rand() for _ in range(5)]
    gen.seed(1)
    assert [gen.rand() for _ in range(5)] == first


def test_lcg_values_in_range():
    gen = LinearCongruential(42)
    values = [gen.rand() for _ in range(1000)]
    assert all(0 <= v <= LinearCongruential.RAND_MAX for v in values)


def test_random_in_range_bounds():
    gen = LinearCongruential(7)
    values = [gen.random_in_range(1, 3) for _ in range(300)]
    assert set(values) <= {1, 2, 3}
    assert len(set(values)) == 3


def test_random_in_range_single_value():
    gen = LinearCongruential()
    assert gen.random_in_range(5, 5) == 5


def test_random_in_range_rejects_empty():
    with pytest.raises(ValueError):
        LinearCongruential().random_in_range(3, 1)


def test_mwc_is_deterministic():
    a, b = MultiplyWithCarry(), MultiplyWithCarry()
    assert [a.get_uint() for _ in range(20)] == [b.get_uint() for _ in range(20)]


def test_mwc_uint_is_32_bit():
    gen = MultiplyWithCarry()
    assert all(0 <= gen.get_uint() < 2**32 for _ in range(500))


@pytest.mark.parametrize("maximum", [1, 2, 100, 1000])
def test_mwc_uniform_below_maximum(maximum):
    gen = MultiplyWithCarry()
    assert all(0 <= gen.get_uniform(maximum) < maximum for _ in range(500))


def test_mwc_uniform_zero_and_one():
    gen = MultiplyWithCarry()
    assert gen.get_uniform(0) == 0
    assert gen.get_uniform(1) == 0


def test_mwc_uniform_spreads():
    gen = MultiplyWithCarry()
    assert {gen.get_uniform(100) % 2 for _ in range(100)} == {0, 1}


def test_satoi():
    assert satoi("123") == 123
    assert satoi("-45") == -45
    assert satoi("0") == 0
    assert satoi("12a") == 0
    assert satoi("a") == 0
    assert satoi("-") == 0
    assert satoi("") == 0
    assert satoi(None) == 0


def test_memcheck():
    block = bytearray(16)
    block[:] = bytes([7]) * 16
    assert memcheck(block, 7, 16)
    block[10] = 8
    assert not memcheck(block, 7, 16)
    assert memcheck(block, 7, 10)
    assert memcheck(block, 7, 0)


def test_memcheck_value_is_a_byte():
    assert memcheck(bytes([255, 255]), -1, 2)


def test_memcheck_rejects_short_block():
    with pytest.raises(ValueError):
        memcheck(b"ab", 0, 3)