"""
This module defines the `Suit`, `Rank`, and `Card` classes, which are used to represent playing cards.

- `Suit`: An enum representing the four suits of a standard deck of playing
cards: Spades, Hearts, Diamonds, and Clubs.

- `Rank`: An enum representing the thirteen ranks of a standard deck, ordered
ace-low (Ace, Two through Ten, Jack, Queen, King). The enum value is the
rank's position in that order, which is the order used to build runs.

- `Card`: A class representing a playing card. A card has a suit and a
rank. Two cards are equal when their suit and rank are equal.

This module is part of the `tongits` package.
"""

from enum import Enum, unique


@unique
class Suit(Enum):
    """
    Enum for suits in a card deck.
    """

    SPADES = "♠"
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"

    @property
    def sort_index(self) -> int:
        """Position of the suit in deck order, used when sorting hands."""
        return _SUIT_ORDER.index(self)

    def __str__(self) -> str:
        return self.value


_SUIT_ORDER = list(Suit)


@unique
class Rank(Enum):
    """
    Enum for ranks in a card deck, ace low.
    """

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    @property
    def point_value(self) -> int:
        """Points the rank counts for in an unmelded hand."""
        return min(self.value, 10)

    @property
    def rank_str(self) -> str:
        """A string representation of the rank."""
        if self in (Rank.ACE, Rank.JACK, Rank.QUEEN, Rank.KING):
            return self.name[0]
        return str(self.value)

    @classmethod
    def from_str(cls, text: str) -> "Rank":
        """
        Parse a rank from its short form ("A", "2".."10", "J", "Q", "K").

        :raises ValueError: if the text is not a rank.
        """
        for rank in cls:
            if rank.rank_str == text.upper():
                return rank
        raise ValueError(f"Invalid rank: {text!r}")

    def __str__(self) -> str:
        return self.rank_str


class Card:
    """
    Class representing a playing card.

    >>> card = Card(Suit.HEARTS, Rank.TWO)
    >>> print(card)
    2♥
    >>> Card(Suit.SPADES, Rank.KING).point_value
    10
    """

    __slots__ = ("suit", "rank")

    def __init__(self, suit: Suit, rank: Rank):
        """
        Initialize a Card instance.

        :param suit: Suit of the card (one of the Suit enums)
        :param rank: Rank of the card (one of the Rank enums)
        """
        if not isinstance(suit, Suit):
            raise TypeError(f"Invalid suit: {suit}")
        if not isinstance(rank, Rank):
            raise TypeError(f"Invalid rank: {rank}")
        object.__setattr__(self, "suit", suit)
        object.__setattr__(self, "rank", rank)

    @classmethod
    def from_str(cls, text: str) -> "Card":
        """
        Build a card from its display form, e.g. ``"10♦"`` or ``"Q♠"``.

        :raises ValueError: if the text does not name a card.
        """
        text = text.strip()
        if len(text) < 2:
            raise ValueError(f"Invalid card: {text!r}")
        try:
            suit = Suit(text[-1])
        except ValueError:
            raise ValueError(f"Invalid suit in card: {text!r}") from None
        return cls(suit, Rank.from_str(text[:-1]))

    @property
    def point_value(self) -> int:
        """Points the card counts for in an unmelded hand."""
        return self.rank.point_value

    @property
    def sort_key(self):
        """Sort key grouping cards by suit, then ace-low rank."""
        return (self.suit.sort_index, self.rank.value)

    def to_dict(self):
        """Serialize the card for a state snapshot."""
        return {
            "suit": self.suit.value,
            "rank": self.rank.rank_str,
            "value": self.point_value,
        }

    def __setattr__(self, name, value):
        raise AttributeError("Card is immutable")

    def __reduce__(self):
        return (Card, (self.suit, self.rank))

    def __eq__(self, other):
        """
        Checks if this card is equal to another card.

        :param other: The other card to compare to.
        :return: True if the cards have the same rank and suit, False otherwise.
        """
        if isinstance(other, Card):
            return self.rank == other.rank and self.suit == other.suit
        return NotImplemented

    def __hash__(self):
        return hash((self.suit, self.rank))

    def __repr__(self) -> str:
        """
        Provide a machine-readable representation of the card.

        :return: A string representation of the card.
        """
        return f"Card(Suit.{self.suit.name}, Rank.{self.rank.name})"

    def __str__(self) -> str:
        """
        Provide a human-readable representation of the card.

        :return: A string representation of the card.
        """
        return f"{self.rank.rank_str}{self.suit.value}"


def cards_from_str(text: str):
    """
    Parse a whitespace separated list of cards, e.g. ``"7♠ 7♥ 7♦"``.

    >>> [str(c) for c in cards_from_str("A♠ 10♦")]
    ['A♠', '10♦']
    """
    return [Card.from_str(token) for token in text.split()]
