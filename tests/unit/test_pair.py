"""Unit tests for pair identifier generation."""

import math
import random
from collections import Counter

from gstt.duplex.pair import PAIR_ALPHABET, PAIR_LENGTH, generate_pair

SAMPLES = 10_000
# Two-sided band with a Bonferroni correction over every (position, symbol)
# cell, so the whole table stays inside it with better than 99% confidence.
Z_BAND = 4.5


def band(n: int, p: float) -> tuple[float, float]:
    mean = n * p
    sd = math.sqrt(n * p * (1 - p))
    return mean - Z_BAND * sd, mean + Z_BAND * sd


class TestGeneratePair:
    """Tests for generate_pair."""

    def test_length_and_alphabet(self) -> None:
        """Test that every identifier has 16 alphanumeric characters."""
        for _ in range(1000):
            pair = generate_pair()
            assert len(pair) == PAIR_LENGTH == 16
            assert set(pair) <= set(PAIR_ALPHABET)

    def test_alphabet_is_digits_then_uppercase(self) -> None:
        """Test the 36-symbol alphabet."""
        assert PAIR_ALPHABET == "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

    def test_fresh_per_call(self) -> None:
        """Test that consecutive identifiers differ."""
        pairs = {generate_pair() for _ in range(100)}
        assert len(pairs) == 100

    def test_seeded_generator_is_reproducible(self) -> None:
        """Test that an injected generator drives the output."""
        assert generate_pair(random.Random(7)) == generate_pair(random.Random(7))

    def test_uniform_per_position(self) -> None:
        """Test that each symbol is equally likely at every position."""
        rng = random.Random(20231119)
        pairs = [generate_pair(rng) for _ in range(SAMPLES)]
        low, high = band(SAMPLES, 1 / len(PAIR_ALPHABET))

        for position in range(PAIR_LENGTH):
            counts = Counter(pair[position] for pair in pairs)
            for symbol in PAIR_ALPHABET:
                assert low <= counts[symbol] <= high, (position, symbol, counts[symbol])

    def test_uniform_overall(self) -> None:
        """Test symbol frequencies over all positions, including the first symbol."""
        rng = random.Random(424242)
        counts = Counter("".join(generate_pair(rng) for _ in range(SAMPLES)))
        low, high = band(SAMPLES * PAIR_LENGTH, 1 / len(PAIR_ALPHABET))

        assert counts["0"] > 0
        for symbol in PAIR_ALPHABET:
            assert low <= counts[symbol] <= high, (symbol, counts[symbol])
