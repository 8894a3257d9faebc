"""
Bot decision engine for Tongits.

``decide`` maps a bot seat and the state it is allowed to see to the next
action, which the engine applies through the same transitions a human's
commands go through. Easy and medium bots should be handed
``state.redacted_for(bot_id)``; hard bots play with every hand visible.

Strategies:

- easy: sometimes takes a discard that melds; lays off when it can,
  otherwise discards at random.
- medium: always takes a discard that melds; lays off, then exposes, then
  discards the card with the fewest nearby cards.
- hard: always takes a discard that melds; fights when it is sure to win,
  then exposes its most valuable meld, lays off its most valuable card, and
  finally sheds high cards that are not part of a likely meld.
"""

import random
from typing import Callable, Dict, List, Optional, Sequence

from tongits.common.card import Card
from tongits.game.actions import (
    Action,
    CallFight,
    Discard,
    DrawFromDiscard,
    DrawFromStock,
    ExposeMeld,
    LayOff,
)
from tongits.game.melds import (
    calculate_hand_value,
    can_lay_off,
    meld_points,
    partition_indices,
)
from tongits.game.state import Difficulty, GameState, PlayerState, TurnPhase

EASY_DISCARD_PICKUP_CHANCE = 0.3
HARD_FIGHT_MAX_WEIGHT = 15
NEIGHBOUR_DISTANCE = 2
HARD_VALUE_WEIGHT = 3
HARD_NEIGHBOUR_PENALTY = 15


def discard_pickup(hand: Sequence[Card], discard_pile: Sequence[Card]) -> Optional[DrawFromDiscard]:
    """
    The discard pickup available to ``hand``, if the top discard would meld.

    The hand plus the top discard is partitioned greedily and the first meld
    that uses the discard names the hand cards to pick it up with.
    """
    if not discard_pile:
        return None
    top_index = len(hand)
    for meld in partition_indices(list(hand) + [discard_pile[-1]]):
        if top_index in meld:
            return DrawFromDiscard(tuple(sorted(i for i in meld if i != top_index)))
    return None


def lay_off_options(player: PlayerState, state: GameState) -> List[LayOff]:
    """Every legal lay-off for ``player``, seats and melds in table order."""
    options = []
    for target in state.players:
        for meld_index, meld in enumerate(target.exposed_melds):
            for card_index, card in enumerate(player.hand):
                if can_lay_off(card, meld.cards):
                    options.append(LayOff(target.id, meld_index, card_index))
    return options


def _neighbours(hand: Sequence[Card], index: int):
    """Same-suit cards within two ranks, and same-rank cards, excluding the card itself."""
    card = hand[index]
    run_neighbours = sum(
        1
        for i, other in enumerate(hand)
        if i != index
        and other.suit == card.suit
        and abs(other.rank.value - card.rank.value) <= NEIGHBOUR_DISTANCE
    )
    set_neighbours = sum(
        1 for i, other in enumerate(hand) if i != index and other.rank == card.rank
    )
    return run_neighbours, set_neighbours


def least_entangled_discard(hand: Sequence[Card]) -> int:
    """Index of the card with the fewest neighbours; the first one on ties."""
    return min(range(len(hand)), key=lambda i: sum(_neighbours(hand, i)))


def aggressive_discard(hand: Sequence[Card]) -> int:
    """Index of the highest-value card that is least tied into a likely meld."""

    def score(i):
        run_neighbours, set_neighbours = _neighbours(hand, i)
        return (
            HARD_VALUE_WEIGHT * hand[i].point_value
            - HARD_NEIGHBOUR_PENALTY * run_neighbours
            - HARD_NEIGHBOUR_PENALTY * set_neighbours
        )

    # max keeps the first of equal scores
    return max(range(len(hand)), key=score)


def easy_strategy(player: PlayerState, state: GameState, rng: random.Random) -> Action:
    if state.phase == TurnPhase.DRAW:
        pickup = discard_pickup(player.hand, state.discard_pile)
        if pickup and rng.random() < EASY_DISCARD_PICKUP_CHANCE:
            return pickup
        return DrawFromStock()

    lay_offs = lay_off_options(player, state)
    if lay_offs:
        return lay_offs[0]
    return Discard(rng.randrange(len(player.hand)))


def medium_strategy(player: PlayerState, state: GameState, rng: random.Random) -> Action:
    if state.phase == TurnPhase.DRAW:
        return discard_pickup(player.hand, state.discard_pile) or DrawFromStock()

    lay_offs = lay_off_options(player, state)
    if lay_offs:
        return lay_offs[0]

    melds = partition_indices(player.hand)
    if melds:
        return ExposeMeld(tuple(melds[0]))

    return Discard(least_entangled_discard(player.hand))


def hard_strategy(player: PlayerState, state: GameState, rng: random.Random) -> Action:
    """Expects every hand to be visible in ``state``."""
    if state.phase == TurnPhase.DRAW:
        return discard_pickup(player.hand, state.discard_pile) or DrawFromStock()

    if player.can_call_fight:
        my_weight = calculate_hand_value(player.hand)
        opponents = [p for p in state.players if p.id != player.id]
        if my_weight <= HARD_FIGHT_MAX_WEIGHT and all(
            calculate_hand_value(p.hand) > my_weight for p in opponents
        ):
            return CallFight()

    melds = partition_indices(player.hand)
    if melds:
        best = max(melds, key=lambda meld: meld_points([player.hand[i] for i in meld]))
        return ExposeMeld(tuple(best))

    lay_offs = lay_off_options(player, state)
    if lay_offs:
        return max(lay_offs, key=lambda option: player.hand[option.card_index].point_value)

    return Discard(aggressive_discard(player.hand))


STRATEGIES: Dict[Difficulty, Callable[[PlayerState, GameState, random.Random], Action]] = {
    Difficulty.EASY: easy_strategy,
    Difficulty.MEDIUM: medium_strategy,
    Difficulty.HARD: hard_strategy,
}


def decide(
    player: PlayerState, state: GameState, rng: Optional[random.Random] = None
) -> Optional[Action]:
    """
    Choose the next action for a bot seat.

    Args:
        player: The bot's seat, as found in ``state``
        state: The state the bot may see
        rng: Random source for the easy strategy

    Returns:
        The chosen action, or None if it is not this seat's turn in a live round
    """
    if not state.is_playing:
        return None
    current = state.current_player
    if current is None or current.id != player.id or not player.hand:
        return None
    strategy = STRATEGIES.get(player.difficulty, easy_strategy)
    return strategy(player, state, rng or random.Random())
