from unittest import mock

import pytest

from smtpdkit.arc4random import Arc4Random, arc4random, arc4random_uniform
from smtpdkit.chacha import ChaCha


def _zero_entropy(n):
    return bytes(n)


@mock.patch("os.urandom", side_effect=_zero_entropy)
def test_first_u32_from_known_seed(_urandom):
    gen = Arc4Random()
    stream = ChaCha(bytes(32), bytes(8)).keystream(1024)
    assert gen.random_u32() == int.from_bytes(stream[40:44], "little")


@mock.patch("os.urandom", side_effect=_zero_entropy)
def test_first_bytes_from_known_seed(_urandom):
    gen = Arc4Random()
    stream = ChaCha(bytes(32), bytes(8)).keystream(1024)
    assert gen.random_bytes(16) == stream[40:56]


@mock.patch("os.urandom", side_effect=_zero_entropy)
def test_same_seed_same_sequence_across_rekeys(_urandom):
    first = Arc4Random().random_bytes(2500)
    second = Arc4Random().random_bytes(2500)
    assert len(first) == 2500
    assert first == second


@mock.patch("os.urandom", side_effect=_zero_entropy)
def test_addrandom_changes_output(_urandom):
    plain = Arc4Random()
    mixed = Arc4Random()
    mixed.addrandom(b"extra entropy")
    a = plain.random_bytes(32)
    b = mixed.random_bytes(32)
    assert len(b) == 32
    assert a != b


@pytest.mark.parametrize("length", [0, 5, 984, 3000])
def test_random_bytes_length(length):
    assert len(Arc4Random().random_bytes(length)) == length


def test_random_bytes_negative_rejected():
    with pytest.raises(ValueError):
        Arc4Random().random_bytes(-1)


def test_random_u32_range():
    gen = Arc4Random()
    values = [gen.random_u32() for _ in range(300)]
    assert all(0 <= v < 2**32 for v in values)
    assert len(set(values)) > 1


@pytest.mark.parametrize("bound", [0, 1])
def test_uniform_small_bounds(bound):
    assert Arc4Random().uniform(bound) == 0


def test_uniform_range():
    gen = Arc4Random()
    values = [gen.uniform(10) for _ in range(300)]
    assert all(0 <= v < 10 for v in values)
    assert len(set(values)) > 1


def test_uniform_large_bound():
    gen = Arc4Random()
    assert all(0 <= gen.uniform(2**32 - 1) < 2**32 - 1 for _ in range(50))


def test_stir_resets_buffer():
    gen = Arc4Random()
    gen.random_bytes(10)
    gen.stir()
    assert len(gen.random_bytes(100)) == 100


@mock.patch("os.urandom", side_effect=_zero_entropy)
def test_pid_change_triggers_reseed(_urandom):
    gen = Arc4Random()
    reference = Arc4Random()
    gen.random_bytes(8)
    reference.random_bytes(8)
    with mock.patch("os.getpid", return_value=-12345):
        after_fork = gen.random_bytes(8)
    same_process = reference.random_bytes(8)
    assert len(after_fork) == 8
    assert after_fork != same_process


def test_module_functions():
    assert 0 <= arc4random() < 2**32
    assert all(0 <= arc4random_uniform(7) < 7 for _ in range(50))
    assert arc4random_uniform(1) == 0