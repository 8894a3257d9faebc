"""
Meld recognition for Tongits.

Pure functions over sequences of cards: set and run validation, the greedy
hand partition used for scoring and by the bots, lay-off checks, and the
settlement tie-break ordering.

The partition in ``find_possible_melds`` is greedy, not optimal. Runs are
claimed first, scanning the hand in (suit, rank) order, and sets are built
from what is left. A card that could serve either a run or a set always ends
up in the run:

>>> from tongits.common.card import cards_from_str
>>> [[str(c) for c in meld] for meld in find_possible_melds(cards_from_str("5♠ 6♠ 7♠ 7♥ 7♦"))]
[['5♠', '6♠', '7♠']]
"""

from typing import Dict, List, Optional, Sequence, Tuple

from tongits.common.card import Card, Rank
from tongits.game.constants import TIE_BREAK_SUIT_PRIORITY, get_tie_break_value

MIN_MELD_SIZE = 3
MAX_SET_SIZE = 4


def is_set(cards: Sequence[Card]) -> bool:
    """Three or four cards of one rank."""
    if len(cards) < MIN_MELD_SIZE or len(cards) > MAX_SET_SIZE:
        return False
    rank = cards[0].rank
    return all(card.rank == rank for card in cards)


def is_run(cards: Sequence[Card]) -> bool:
    """Three or more consecutive cards of one suit, ace low, no wraparound."""
    if len(cards) < MIN_MELD_SIZE:
        return False
    suit = cards[0].suit
    if any(card.suit != suit for card in cards):
        return False
    values = sorted(card.rank.value for card in cards)
    return all(b == a + 1 for a, b in zip(values, values[1:]))


def is_meld(cards: Sequence[Card]) -> bool:
    return is_set(cards) or is_run(cards)


def partition_indices(hand: Sequence[Card]) -> List[List[int]]:
    """
    Greedy meld partition of ``hand``, as lists of indices into ``hand``.

    Cards are visited in (suit, rank) order. Each unused card starts a
    candidate run that absorbs every later unused card of the same suit whose
    rank is one above the run's last card; runs of three or more are claimed.
    The remaining cards are grouped by rank and groups of three or more are
    claimed as sets, lowest rank first with the ace counted low.

    >>> from tongits.common.card import cards_from_str
    >>> [[str(c) for c in meld] for meld in find_possible_melds(
    ...     cards_from_str("K♠ K♥ K♦ A♠ A♥ A♣ 2♣ 2♦ 2♥"))]
    [['A♠', 'A♥', 'A♣'], ['2♥', '2♦', '2♣'], ['K♠', 'K♥', 'K♦']]
    """
    order = sorted(range(len(hand)), key=lambda i: hand[i].sort_key)
    used = set()
    melds: List[List[int]] = []

    for pos, start in enumerate(order):
        if start in used:
            continue
        run = [start]
        for j in order[pos + 1 :]:
            if j in used:
                continue
            last = hand[run[-1]]
            if (
                hand[j].suit == last.suit
                and hand[j].rank.value == last.rank.value + 1
            ):
                run.append(j)
        if len(run) >= MIN_MELD_SIZE:
            melds.append(run)
            used.update(run)

    by_rank: Dict[Rank, List[int]] = {}
    for i in order:
        if i not in used:
            by_rank.setdefault(hand[i].rank, []).append(i)

    for rank in sorted(by_rank, key=lambda r: r.value):
        group = by_rank[rank]
        if len(group) >= MIN_MELD_SIZE:
            melds.append(group)

    return melds


def find_possible_melds(hand: Sequence[Card]) -> List[List[Card]]:
    """Greedy meld partition of ``hand``; see ``partition_indices``."""
    return [[hand[i] for i in meld] for meld in partition_indices(hand)]


def calculate_hand_value(hand: Sequence[Card]) -> int:
    """Sum of point values of the cards the greedy partition leaves unmelded."""
    melded = {i for meld in partition_indices(hand) for i in meld}
    return sum(card.point_value for i, card in enumerate(hand) if i not in melded)


def meld_points(cards: Sequence[Card]) -> int:
    return sum(card.point_value for card in cards)


def can_lay_off(card: Card, meld_cards: Sequence[Card]) -> bool:
    """
    Check whether ``card`` extends an exposed meld.

    A set takes a fourth card of its rank. A run takes a card of its suit one
    rank below its lowest card or one above its highest.
    """
    if is_set(meld_cards):
        return len(meld_cards) < MAX_SET_SIZE and card.rank == meld_cards[0].rank
    if is_run(meld_cards):
        values = [c.rank.value for c in meld_cards]
        return card.suit == meld_cards[0].suit and (
            card.rank.value == min(values) - 1 or card.rank.value == max(values) + 1
        )
    return False


def sort_run(cards: Sequence[Card]) -> List[Card]:
    return sorted(cards, key=lambda c: c.rank.value)


def tie_break_key(card: Card) -> Tuple[int, int]:
    """Settlement ordering: rank first (Q > K > J > 10 ... > A), then suit (♦ > ♥ > ♠ > ♣)."""
    return (get_tie_break_value(card.rank), TIE_BREAK_SUIT_PRIORITY[card.suit])


def compare_for_tie_break(card_a: Optional[Card], card_b: Optional[Card]) -> int:
    """
    Compare two cards in settlement order.

    Returns a positive number when ``card_a`` wins, negative when ``card_b``
    wins and zero for the same card. A missing card always loses.
    """
    if card_a is None:
        return -1
    if card_b is None:
        return 1
    key_a, key_b = tie_break_key(card_a), tie_break_key(card_b)
    return (key_a > key_b) - (key_a < key_b)


def find_best_card(hand: Sequence[Card]) -> Optional[Card]:
    """The hand's highest card in settlement order, or None for an empty hand."""
    if not hand:
        return None
    return max(hand, key=tie_break_key)
