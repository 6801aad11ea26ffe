"""Unit tests for app/utils/tokens.py."""

from collections import Counter

import pytest

from app.errors import ConfigurationError
from app.utils.tokens import URL_SAFE_ALPHABET, generate_token


@pytest.mark.parametrize("length", [1, 16, 48, 200])
def test_token_has_exact_length(length: int) -> None:
    assert len(generate_token(length)) == length


def test_token_uses_url_safe_alphabet() -> None:
    token = generate_token(500)
    assert set(token) <= set(URL_SAFE_ALPHABET)


@pytest.mark.parametrize("length", [0, -1, True, "48", 4.0])
def test_invalid_length_rejected(length: object) -> None:
    with pytest.raises(ConfigurationError):
        generate_token(length)  # type: ignore[arg-type]


def test_no_collisions_and_even_distribution() -> None:
    """10,000 tokens at length 48: all distinct, every symbol used roughly equally."""
    tokens = [generate_token(48) for _ in range(10_000)]
    assert len(set(tokens)) == len(tokens)

    counts = Counter("".join(tokens))
    assert set(counts) == set(URL_SAFE_ALPHABET)
    expected = 10_000 * 48 / len(URL_SAFE_ALPHABET)  # 7500 per symbol
    for symbol, count in counts.items():
        assert abs(count - expected) < expected * 0.15, symbol
