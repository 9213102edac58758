"""
Naming Allocator Unit Tests

The allocator is pure: same seed and prefix, same name; the suffix depends
on the seed only.
"""

import re

import pytest

from hubgate.control_plane.services.naming_service import (
    ALPHABET,
    NamingAllocator,
    collision_probability,
    derive_suffix,
    encode_base36,
)
from hubgate.core.exceptions import ValidationError
from hubgate.schemas.tenant import TenantContext


def _context(subscription: str = "sub-0001", resource_group: str = "rg-contoso") -> TenantContext:
    return TenantContext(subscription_id=subscription, resource_group=resource_group)


class TestEncodeBase36:
    """Suffix alphabet and padding."""

    def test_zero_is_padded(self):
        assert encode_base36(0, 6) == "000000"

    def test_known_values(self):
        assert encode_base36(35, 2) == "0z"
        assert encode_base36(36, 2) == "10"
        assert encode_base36(36**3 - 1, 3) == "zzz"

    def test_alphabet_is_lowercase_alphanumeric(self):
        assert ALPHABET == "0123456789abcdefghijklmnopqrstuvwxyz"


class TestAllocate:
    """NamingAllocator.allocate."""

    def test_same_seed_same_name(self):
        """
        Allocation is deterministic.

        Scenario: Allocate twice from identical context and prefix.
        Expected: Identical names.
        """
        allocator = NamingAllocator(suffix_length=6)
        assert allocator.allocate(_context(), "Contoso RAG") == allocator.allocate(
            _context(), "Contoso RAG"
        )

    def test_name_shape(self):
        name = NamingAllocator(suffix_length=6).allocate(_context(), "Contoso RAG")
        assert re.fullmatch(r"contoso-rag-[0-9a-z]{6}", name)

    def test_suffix_ignores_prefix(self):
        """
        Renaming keeps the suffix.

        Scenario: Same seed, different prefixes.
        Expected: Names differ only before the suffix.
        """
        allocator = NamingAllocator(suffix_length=6)
        first = allocator.allocate(_context(), "alpha")
        second = allocator.allocate(_context(), "beta")
        assert first.rsplit("-", 1)[1] == second.rsplit("-", 1)[1]

    def test_seed_is_case_and_whitespace_insensitive(self):
        allocator = NamingAllocator(suffix_length=6)
        assert allocator.allocate(_context("SUB-0001 ", " RG-Contoso"), "x") == allocator.allocate(
            _context("sub-0001", "rg-contoso"), "x"
        )

    def test_different_seeds_differ(self):
        allocator = NamingAllocator(suffix_length=6)
        names = {
            allocator.allocate(_context(resource_group=f"rg-{i}"), "tenant") for i in range(200)
        }
        assert len(names) == 200

    def test_suffix_length_is_configurable(self):
        name = NamingAllocator(suffix_length=10).allocate(_context(), "t")
        assert len(name.rsplit("-", 1)[1]) == 10

    def test_long_prefix_fits_dns_label(self):
        name = NamingAllocator(suffix_length=6).allocate(_context(), "x" * 200)
        assert len(name) <= 63

    def test_prefix_without_letters_rejected(self):
        """
        A prefix must produce a non-empty slug.

        Scenario: Prefix made only of punctuation.
        Expected: ValidationError.
        """
        with pytest.raises(ValidationError):
            NamingAllocator().allocate(_context(), "!!! ***")

    def test_describe_reports_collision_odds(self):
        response = NamingAllocator(suffix_length=6).describe(_context(), "Contoso")
        assert response.unique_name.endswith(response.suffix)
        assert response.suffix == derive_suffix("sub-0001/rg-contoso", 6)
        assert 0.02 < response.collision_probability_at_10k < 0.025


class TestCollisionProbability:
    """Birthday bound over 36^L suffixes."""

    def test_trivial_counts(self):
        assert collision_probability(0, 6) == 0.0
        assert collision_probability(1, 6) == 0.0

    def test_grows_with_population(self):
        assert collision_probability(1_000, 6) < collision_probability(10_000, 6)

    def test_shrinks_with_length(self):
        assert collision_probability(10_000, 8) < collision_probability(10_000, 6)

    def test_ten_thousand_at_default_length(self):
        assert collision_probability(10_000, 6) == pytest.approx(0.0227, abs=0.001)
