"""
Challenge Prompts
=================

Fixed catalog of challenge prompts shown while a game is running.

Selection is a uniform draw with replacement; consecutive draws may repeat.
Pass a seeded ``random.Random`` for reproducible sequences.
"""

import random
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class ChallengePrompt:
    """A leading symbol paired with descriptive text."""

    symbol: str
    text: str

    def __str__(self) -> str:
        return f"{self.symbol} {self.text}"


CHALLENGES: Tuple[ChallengePrompt, ...] = (
    ChallengePrompt("😁", "Show your biggest smile!"),
    ChallengePrompt("😡", "Angry face!"),
    ChallengePrompt("😜", "Stick your tongue out!"),
    ChallengePrompt("😎", "Cool pose!"),
    ChallengePrompt("😱", "Surprise face!"),
    ChallengePrompt("😂", "Laugh hard!"),
    ChallengePrompt("🤔", "Thinking face!"),
    ChallengePrompt("🙃", "Upside-down smile!"),
)

BACKGROUND_LABEL = "Background capture"


def random_prompt(rng: Optional[random.Random] = None) -> ChallengePrompt:
    """Draw one prompt uniformly from the catalog."""
    return (rng or random).choice(CHALLENGES)
