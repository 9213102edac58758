"""
Naming Allocator

Derives deterministic, collision-resistant unique names from a tenant seed.

How a name is built:
====================
    seed   = "{subscription_id}/{resource_group}"  (trimmed, lower-cased)
    digest = SHA-256(seed)
    suffix = base36(int(digest) mod 36^L), zero-padded to L chars
    name   = "{slugify(prefix)}-{suffix}"

    allocate("Contoso RAG", sub="0000-1", rg="rg-contoso")
    → "contoso-rag-k3x9q2"

The suffix depends on the seed only, never on the prefix, so a tenant keeps
its suffix if it is renamed, and the same seed always yields the same name.

Collision Probability:
======================
Suffixes are uniform over N = 36^L values. For n distinct seeds the chance
that ANY two share a suffix is the birthday bound

    p(n) = 1 - exp(-n(n-1) / 2N)

With the default L = 6 (N ≈ 2.18e9): p(1,000) ≈ 0.023%, p(10,000) ≈ 2.3%.
Names also differ by prefix, so a clash needs an equal prefix too. A clash
that does happen surfaces as a ConflictError at onboarding; there is no
retry, because a retry would break determinism.
"""

import hashlib
import math
import string

from hubgate.config.settings import settings
from hubgate.core.exceptions import ValidationError
from hubgate.core.utils import slugify
from hubgate.schemas.naming import AllocateResponse
from hubgate.schemas.tenant import TenantContext

ALPHABET = string.digits + string.ascii_lowercase
MAX_NAME_LENGTH = 63


def encode_base36(value: int, length: int) -> str:
    """Encode a non-negative int as lower-case base36, left-padded to length."""
    chars: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        chars.append(ALPHABET[remainder])
    return "".join(reversed(chars)).rjust(length, "0")


def derive_suffix(seed: str, length: int | None = None) -> str:
    """Hash a seed down to a fixed-length alphanumeric suffix."""
    length = length or settings.NAME_SUFFIX_LENGTH
    digest = int.from_bytes(hashlib.sha256(seed.encode()).digest(), "big")
    return encode_base36(digest % (36**length), length)


def collision_probability(n: int, length: int | None = None) -> float:
    """Probability that any two of n distinct seeds share a suffix."""
    length = length or settings.NAME_SUFFIX_LENGTH
    if n < 2:
        return 0.0
    space = 36**length
    return -math.expm1(-n * (n - 1) / (2 * space))


class NamingAllocator:
    """
    Pure allocator: no I/O, no state.

    The tenant context is passed in explicitly; nothing is looked up from the
    environment.
    """

    def __init__(self, suffix_length: int | None = None) -> None:
        self.suffix_length = suffix_length or settings.NAME_SUFFIX_LENGTH

    def allocate(self, context: TenantContext, prefix: str) -> str:
        """
        Allocate the unique name for a tenant.

        Args:
            context: Stable seed (subscription + resource group)
            prefix: Human-readable prefix, slugified

        Returns:
            "{prefix}-{suffix}"

        Raises:
            ValidationError: If the prefix has no usable characters
        """
        suffix = derive_suffix(context.seed(), self.suffix_length)
        slug = slugify(prefix, max_length=MAX_NAME_LENGTH - self.suffix_length - 1)
        if not slug:
            raise ValidationError(
                "Name prefix must contain at least one letter or digit",
                details={"prefix": prefix},
            )
        return f"{slug}-{suffix}"

    def describe(self, context: TenantContext, prefix: str) -> AllocateResponse:
        unique_name = self.allocate(context, prefix)
        return AllocateResponse(
            unique_name=unique_name,
            suffix=unique_name.rsplit("-", 1)[1],
            suffix_length=self.suffix_length,
            collision_probability_at_10k=collision_probability(10_000, self.suffix_length),
        )
