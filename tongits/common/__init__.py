"""
Card primitives shared by the Tongits engine: suits, ranks, cards and the deck.
"""

from tongits.common.card import Card, Rank, Suit, cards_from_str
from tongits.common.deck import Deck

__all__ = ["Card", "Rank", "Suit", "Deck", "cards_from_str"]
