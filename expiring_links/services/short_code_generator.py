"""
Short code generators.
Uses Strategy Pattern so the service can be driven by a scripted
generator in tests.
"""

import random
import string
from abc import ABC, abstractmethod
from typing import Optional

from expiring_links.config import LinkPolicy

# Base62 characters (alphanumeric, case-sensitive)
ALPHABET = string.ascii_letters + string.digits


class ShortCodeGenerator(ABC):
    """Abstract base class for short code generators"""

    @abstractmethod
    def next_code(self) -> str:
        """
        Produce one candidate code.

        Candidates are not guaranteed unique; the caller checks the store.
        """
        pass


class RandomShortCodeGenerator(ShortCodeGenerator):
    """
    Uniform random draw from the 62 symbol alphabet.

    Pros: Simple, no shared state, no DB round trip to generate
    Cons: Collisions possible, not cryptographically unpredictable
    """

    def __init__(self, policy: LinkPolicy, rng: Optional[random.Random] = None):
        self.length = policy.code_length
        self.rng = rng or random.Random()

    def next_code(self) -> str:
        return "".join(self.rng.choices(ALPHABET, k=self.length))
