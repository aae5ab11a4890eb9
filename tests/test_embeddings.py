"""Tests for local embeddings and vector helpers."""

import math

import pytest

from codeviz.analyzers.embeddings import (
    _hash_token,
    calculate_centroid,
    euclidean_distance,
    extract_keywords,
    local_embedding,
)


class TestHashToken:
    """Tests for the 32-bit polynomial string hash."""

    def test_matches_polynomial(self) -> None:
        assert _hash_token("abc") == 96354

    def test_wraps_to_signed_32_bit(self) -> None:
        assert _hash_token("polygenelubricants") == -(2**31)


class TestLocalEmbedding:
    """Tests for the hashed bag-of-words embedding."""

    def test_dimensions_and_unit_norm(self) -> None:
        vector = local_embedding("parse the config file and load settings")

        assert len(vector) == 64
        assert math.sqrt(sum(v * v for v in vector)) == pytest.approx(1.0)

    def test_deterministic_and_case_insensitive(self) -> None:
        assert local_embedding("Load Config") == local_embedding("load config")

    def test_token_lands_in_hashed_dimension(self) -> None:
        """'abc' hashes to 96354, and 96354 % 64 == 34."""
        vector = local_embedding("abc")

        assert vector[34] == pytest.approx(1.0)
        assert sum(vector) == pytest.approx(1.0)

    def test_log_weighted_term_frequency(self) -> None:
        """A token seen twice weighs 2 * (1 + ln 2) against a single one."""
        vector = local_embedding("abc abc xyz")

        assert vector[34] / vector[25] == pytest.approx(2 * (1 + math.log(2)))

    def test_short_tokens_ignored(self) -> None:
        """Text with no token longer than two characters embeds to zero."""
        assert local_embedding("a an if x") == [0.0] * 64

    def test_empty_text(self) -> None:
        assert local_embedding("") == [0.0] * 64

    def test_custom_dimensions(self) -> None:
        assert len(local_embedding("hello world", dimensions=16)) == 16

    def test_rejects_non_positive_dimensions(self) -> None:
        with pytest.raises(ValueError, match="dimensions"):
            local_embedding("hello", dimensions=0)


class TestVectorHelpers:
    """Tests for distance and centroid helpers."""

    def test_euclidean_distance(self) -> None:
        assert euclidean_distance([0, 0], [3, 4]) == pytest.approx(5.0)

    def test_distance_uses_shared_prefix(self) -> None:
        assert euclidean_distance([3, 4, 100], [0, 0]) == pytest.approx(5.0)

    def test_centroid(self) -> None:
        assert calculate_centroid([[0, 0], [2, 4]]) == [1.0, 2.0]

    def test_centroid_of_nothing(self) -> None:
        assert calculate_centroid([]) == []


class TestExtractKeywords:
    """Tests for keyword extraction."""

    def test_most_frequent_first(self) -> None:
        keywords = extract_keywords(["parser token token", "token parser lexer"])

        assert keywords == ["token", "parser", "lexer"]

    def test_stop_words_and_short_words_dropped(self) -> None:
        keywords = extract_keywords(["function return the const id db cache"])

        assert keywords == ["cache"]

    def test_words_must_start_with_letter(self) -> None:
        assert extract_keywords(["123abc abc123"]) == ["abc123"]

    def test_top_n_limit(self) -> None:
        contents = [" ".join(f"word{i}" for i in range(20))]

        assert len(extract_keywords(contents)) == 10
        assert len(extract_keywords(contents, top_n=3)) == 3
