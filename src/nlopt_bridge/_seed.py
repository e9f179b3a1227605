"""Seeding of the native random number generator.

The seed is process-wide state of the native library. It affects stochastic
algorithms started after it is set, and not optimizations already running.
Seeding from several threads at once is not supported.
"""

import logging
import numbers

import nlopt

from .exceptions import InvalidArgument

_logger = logging.getLogger(__name__)


def set_seed(seed: int) -> None:
    """Seed the random number generator of the native library.

    Args:
        seed: A non-negative integer.

    Raises:
        InvalidArgument: If the seed is not a non-negative integer.
    """
    if not isinstance(seed, numbers.Integral) or isinstance(seed, bool) or seed < 0:
        msg = f"seed must be a non-negative integer, got {seed!r}"
        raise InvalidArgument(msg)
    _logger.debug("Seeding NLopt with %d", seed)
    nlopt.srand(int(seed))


def reset_seed_from_system_time() -> None:
    """Reseed the random number generator of the native library from the clock."""
    nlopt.srand_time()
