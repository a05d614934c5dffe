"""Pair identifiers correlating the upload and download halves of a session."""

import random

PAIR_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
PAIR_LENGTH = 16

_system_random = random.SystemRandom()


def generate_pair(rng: random.Random | None = None) -> str:
    """Generate a fresh pair identifier.

    Every character is drawn independently and uniformly from
    ``PAIR_ALPHABET``.

    Args:
        rng: Random generator to draw from. Defaults to an OS-seeded
            ``SystemRandom``; tests pass a seeded ``random.Random``.

    Returns:
        A 16-character alphanumeric string.
    """
    rng = rng or _system_random
    return "".join(rng.choice(PAIR_ALPHABET) for _ in range(PAIR_LENGTH))
