"""Tongits-specific constants and value mappings."""

from tongits.common.card import Rank, Suit

# Settlement tie-break ranks. Queen beats King beats Jack; Ace is lowest.
TIE_BREAK_VALUES = {
    Rank.ACE: 1,
    Rank.TWO: 2,
    Rank.THREE: 3,
    Rank.FOUR: 4,
    Rank.FIVE: 5,
    Rank.SIX: 6,
    Rank.SEVEN: 7,
    Rank.EIGHT: 8,
    Rank.NINE: 9,
    Rank.TEN: 10,
    Rank.JACK: 11,
    Rank.KING: 12,
    Rank.QUEEN: 13,
}

# Suit priority for settlement tie-breaks
TIE_BREAK_SUIT_PRIORITY = {
    Suit.DIAMONDS: 4,
    Suit.HEARTS: 3,
    Suit.SPADES: 2,
    Suit.CLUBS: 1,
}

SEATS_PER_TABLE = 3


def get_tie_break_value(rank: Rank) -> int:
    """Get the settlement tie-break value for a given rank."""
    return TIE_BREAK_VALUES[rank]
