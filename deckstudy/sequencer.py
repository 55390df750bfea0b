"""
Card Sequencer: draws the presentation order of a deck's cards for one study
attempt.
"""

import logging
import random
from typing import List, Optional, Sequence, TypeVar

from .exceptions import EmptyDeckError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def shuffle_cards(
    cards: Sequence[T], rng: Optional[random.Random] = None
) -> List[T]:
    """
    Return a uniformly random permutation of `cards`.

    The input is left untouched; every call draws an independent order.

    Parameters:
        cards: The deck's card set.
        rng: Random source, for reproducible orders. Defaults to the module
            level generator.

    Raises:
        EmptyDeckError: If `cards` is empty.
    """
    if not cards:
        raise EmptyDeckError("Cannot build a study sequence for an empty deck.")
    sequence = list(cards)
    (rng or random).shuffle(sequence)
    logger.debug(f"Shuffled {len(sequence)} cards.")
    return sequence
