"""
The 52-card stock a Tongits round is dealt from.

Cards are kept in a list whose last element is the top of the deck, so
dealing and drawing pop from the end. Shuffles draw from an injected
``random.Random`` so a seeded table deals the same round every time.

>>> deck = Deck()
>>> deck.size
52
>>> deck.draw()
Card(Suit.CLUBS, Rank.KING)
>>> deck.size
51
"""

import random
from typing import List, Optional

from tongits.common.card import Card, Rank, Suit

# Suits in deck order, ranks ace-low within each suit
_FULL_DECK = tuple(Card(suit, rank) for suit in Suit for rank in Rank)


class Deck:
    """
    A deck of cards, top card last.

    :param cards: Cards to start from, bottom first (a full deck if omitted).
    :param rng: Random source for ``shuffle`` (a fresh unseeded one if omitted).
    """

    def __init__(self, cards: Optional[List[Card]] = None, rng: Optional[random.Random] = None):
        self.cards: List[Card] = list(_FULL_DECK if cards is None else cards)
        self.rng = rng or random.Random()

    def shuffle(self) -> "Deck":
        """
        Fisher-Yates shuffle in place; returns the deck for chaining.

        >>> shuffled = Deck(rng=random.Random(7)).shuffle()
        >>> sorted(shuffled.cards, key=lambda c: c.sort_key) == list(_FULL_DECK)
        True
        """
        cards = self.cards
        for i in range(len(cards) - 1, 0, -1):
            j = self.rng.randint(0, i)
            cards[i], cards[j] = cards[j], cards[i]
        return self

    def draw(self) -> Optional[Card]:
        """Take the top card, or None when the deck is empty."""
        return self.cards.pop() if self.cards else None

    @property
    def size(self) -> int:
        return len(self.cards)

    def is_empty(self) -> bool:
        return not self.cards

    def reset(self) -> None:
        """Restore the full, unshuffled deck."""
        self.cards = list(_FULL_DECK)

    def __repr__(self) -> str:
        return f"Deck({self.cards!r})"

    def __str__(self) -> str:
        return f"Deck of {len(self.cards)} cards"
