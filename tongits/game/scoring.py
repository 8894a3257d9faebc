"""
Settlement of a terminated Tongits round.

Each losing seat pays the winner. The base rate depends on how the round
ended, and bonuses are added for the winner's aces and secret melds and for
losers who were burned or never opened. The winner also collects the side
pot. Balances are not floored at zero.
"""

from dataclasses import replace
from typing import List, Tuple

from tongits.game.state import (
    ChipExchange,
    EndType,
    PlayerState,
    Settlement,
    TongitsRules,
)


def loser_payment(
    winner: PlayerState, loser: PlayerState, end_type: EndType, rules: TongitsRules
) -> int:
    """Chips one losing seat owes the winner."""
    payment = rules.challenged_payment if end_type.is_challenged else rules.base_payment
    payment += winner.ace_count() * rules.ace_bonus
    payment += (
        sum(1 for meld in winner.exposed_melds if meld.is_secret)
        * rules.secret_meld_bonus
    )
    if loser.is_burned or not loser.has_opened:
        payment += rules.burned_penalty
    return payment


def settle_round(
    players: List[PlayerState],
    winner_index: int,
    end_type: EndType,
    rules: TongitsRules,
    side_pot: int = 0,
) -> Tuple[List[PlayerState], Settlement]:
    """
    Apply chip transfers for a round won by ``players[winner_index]``.

    Args:
        players: Seats at the end of the round
        winner_index: Index of the winning seat
        end_type: How the round ended
        rules: Table rules holding the payment amounts
        side_pot: Antes awarded to the winner on top of the payments

    Returns:
        The updated seats and the settlement record
    """
    winner = players[winner_index]
    exchanges = []
    new_players = list(players)

    for i, loser in enumerate(players):
        if i == winner_index:
            continue
        amount = loser_payment(winner, loser, end_type, rules)
        exchanges.append(ChipExchange(from_id=loser.id, to_id=winner.id, amount=amount))
        new_players[i] = replace(loser, chips=loser.chips - amount)

    winner_total = sum(exchange.amount for exchange in exchanges)
    new_players[winner_index] = replace(
        winner, chips=winner.chips + winner_total + side_pot
    )

    return new_players, Settlement(
        exchanges=exchanges, winner_total=winner_total, side_pot_claimed=side_pot
    )
