"""
State transition functions for the Tongits card game.

This module provides pure functions for transitioning between game states,
without modifying the original state objects. A transition that rejects its
command returns the very state object it was given, so callers can detect
failure with an identity check.
"""

from typing import Iterable, List, Optional, Sequence
from dataclasses import replace
import random
import time

from tongits.common.deck import Deck
from tongits.events import EventBus, EngineEventType
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
    find_best_card,
    is_meld,
    is_run,
    sort_run,
    tie_break_key,
)
from tongits.game.scoring import settle_round
from tongits.game.state import (
    Difficulty,
    EndType,
    GameState,
    GameStatus,
    LogEntry,
    Meld,
    PlayerKind,
    PlayerResult,
    PlayerState,
    RoundResult,
    TurnPhase,
)


def _emit(event_type: EngineEventType, data: dict) -> None:
    EventBus.get_instance().emit(event_type, data)


def _with_log(state: GameState, message: str) -> GameState:
    logs = list(state.logs)
    logs.append(LogEntry(message))
    return replace(state, logs=logs[-state.rules.log_limit :])


def _active_index(state: GameState, player_id: str, phase: TurnPhase) -> Optional[int]:
    """Index of ``player_id`` if it is that seat's turn in ``phase``, else None."""
    if state.status != GameStatus.PLAYING or state.phase != phase:
        return None
    player = state.current_player
    if player is None or player.id != player_id:
        return None
    return state.turn_index


def _valid_index(index, size: int) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < size


def _valid_indices(indices: Sequence[int], size: int) -> bool:
    """Non-empty, distinct and in range."""
    if not indices or len(set(indices)) != len(indices):
        return False
    return all(_valid_index(i, size) for i in indices)


def _without(hand: List, indices: Iterable[int]) -> List:
    skip = set(indices)
    return [card for i, card in enumerate(hand) if i not in skip]


def _new_meld(cards: List) -> Meld:
    return Meld(cards=sort_run(cards) if is_run(cards) else list(cards))


def _open(player: PlayerState) -> PlayerState:
    """Mark a seat as opened, noting whether the opening happened this turn."""
    return replace(
        player,
        has_opened=True,
        opened_this_turn=player.opened_this_turn or not player.has_opened,
    )


class StateTransitionEngine:
    """
    Pure functions for state transitions in Tongits.

    This class contains static methods that implement game state transitions.
    Each method takes a state and returns a new state, without modifying the
    original. Rejected commands return the original state unchanged.
    """

    @staticmethod
    def add_player(
        state: GameState,
        name: str,
        player_id: Optional[str] = None,
        kind: PlayerKind = PlayerKind.HUMAN,
        difficulty: Optional[Difficulty] = None,
    ) -> GameState:
        """
        Seat a player at the table.

        Args:
            state: Current game state
            name: Display name of the player
            player_id: ID for the player (generated if omitted)
            kind: Human or bot
            difficulty: Strategy tier for bots (medium if omitted)

        Returns:
            New game state with the player seated, or the original state if
            the table is full, a round is live or the ID is taken
        """
        if len(state.players) >= state.rules.max_players:
            return state  # Table is full
        if state.status == GameStatus.PLAYING:
            return state  # Can't join a live round
        if player_id is not None and state.find_player_index(player_id) is not None:
            return state  # ID already seated

        if kind == PlayerKind.BOT:
            difficulty = difficulty or Difficulty.MEDIUM
        else:
            difficulty = None

        fields = dict(
            name=name,
            kind=kind,
            difficulty=difficulty,
            chips=state.rules.starting_chips,
        )
        if player_id is not None:
            fields["id"] = player_id
        new_player = PlayerState(**fields)

        new_players = list(state.players)
        new_players.append(new_player)
        new_state = replace(state, players=new_players)

        _emit(
            EngineEventType.PLAYER_JOINED,
            {
                "game_id": state.id,
                "player_id": new_player.id,
                "player_name": new_player.name,
                "kind": new_player.kind.value,
                "difficulty": difficulty.value if difficulty else None,
                "timestamp": new_state.timestamp,
            },
        )

        return new_state

    @staticmethod
    def remove_player(state: GameState, player_id: str) -> GameState:
        """
        Remove a player from the table.

        A live round cannot continue short-handed, so removing a seat during
        play abandons the round: the table returns to the lobby with hands,
        melds, stock and discard pile cleared. Antes already paid stay in the
        side pot for the next round.

        Args:
            state: Current game state
            player_id: ID of the player to remove

        Returns:
            New game state with the player removed
        """
        player_index = state.find_player_index(player_id)
        if player_index is None:
            return state  # Player not found

        new_players = list(state.players)
        removed_player = new_players.pop(player_index)

        winner_of_previous_round = state.winner_of_previous_round
        if winner_of_previous_round == player_id:
            winner_of_previous_round = None

        new_state = replace(
            state,
            players=new_players,
            winner_of_previous_round=winner_of_previous_round,
        )

        if state.status == GameStatus.PLAYING:
            new_state = replace(
                new_state,
                players=[
                    replace(
                        p,
                        hand=[],
                        exposed_melds=[],
                        has_opened=False,
                        opened_this_turn=False,
                    )
                    for p in new_players
                ],
                deck=[],
                discard_pile=[],
                turn_index=0,
                phase=TurnPhase.DRAW,
                status=GameStatus.LOBBY,
            )
            new_state = _with_log(
                new_state, f"{removed_player.name} left. Round abandoned."
            )

        _emit(
            EngineEventType.PLAYER_LEFT,
            {
                "game_id": state.id,
                "player_id": removed_player.id,
                "player_name": removed_player.name,
                "round_abandoned": state.status == GameStatus.PLAYING,
                "timestamp": new_state.timestamp,
            },
        )

        return new_state

    @staticmethod
    def reset(state: GameState) -> GameState:
        """
        Clear the table back to an empty lobby, keeping its ID and rules.
        """
        new_state = GameState(id=state.id, rules=state.rules)
        _emit(
            EngineEventType.TABLE_RESET,
            {"game_id": state.id, "timestamp": new_state.timestamp},
        )
        return new_state

    @staticmethod
    def start_round(state: GameState, rng: Optional[random.Random] = None) -> GameState:
        """
        Shuffle, collect antes and deal a new round.

        Every seat gets ``hand_size`` cards dealt in seat order and the dealer
        one more. The dealer is the previous round's winner, or a random seat
        for the first round, and starts in the action phase.

        Args:
            state: Current game state
            rng: Random source for the shuffle and the first dealer

        Returns:
            New game state with the round in play
        """
        rules = state.rules
        if len(state.players) != rules.max_players:
            return state  # Need a full table
        if state.status == GameStatus.PLAYING:
            return state  # A round is already live

        rng = rng or random.Random()
        deck = Deck(rng=rng).shuffle()

        side_pot = state.side_pot
        players = []
        for player in state.players:
            players.append(
                replace(
                    player,
                    chips=player.chips - rules.ante,
                    hand=[],
                    exposed_melds=[],
                    has_opened=False,
                    opened_this_turn=False,
                    is_burned=False,
                    concealed_count=None,
                )
            )
            side_pot += rules.ante

        dealer_index = None
        if state.winner_of_previous_round is not None:
            dealer_index = state.find_player_index(state.winner_of_previous_round)
        if dealer_index is None:
            dealer_index = rng.randrange(len(players))

        hands = [[] for _ in players]
        for _ in range(rules.hand_size):
            for hand in hands:
                hand.append(deck.draw())
        hands[dealer_index].append(deck.draw())

        players = [replace(player, hand=hand) for player, hand in zip(players, hands)]

        new_state = replace(
            state,
            players=players,
            deck=deck.cards,
            discard_pile=[],
            turn_index=dealer_index,
            dealer_index=dealer_index,
            phase=TurnPhase.ACTION,
            status=GameStatus.PLAYING,
            side_pot=side_pot,
            round_results=None,
            round_number=state.round_number + 1,
            logs=[],
            timestamp=time.time(),
        )
        dealer = players[dealer_index]
        new_state = _with_log(
            new_state, f"{dealer.name} is the dealer and starts the action."
        )

        _emit(
            EngineEventType.ANTE_COLLECTED,
            {
                "game_id": new_state.id,
                "ante": rules.ante,
                "side_pot": side_pot,
                "balances": {p.id: p.chips for p in players},
                "timestamp": new_state.timestamp,
            },
        )
        _emit(
            EngineEventType.ROUND_STARTED,
            {
                "game_id": new_state.id,
                "round_number": new_state.round_number,
                "dealer": dealer.name,
                "dealer_index": dealer_index,
                "side_pot": side_pot,
                "timestamp": new_state.timestamp,
            },
        )

        return new_state

    @staticmethod
    def draw_from_stock(state: GameState, player_id: str) -> GameState:
        """
        Draw the top card of the stock.

        If the draw empties the stock the round ends at once in a showdown of
        hand weights.

        Args:
            state: Current game state
            player_id: ID of the drawing player

        Returns:
            New game state with the card in hand and the seat in its action phase
        """
        player_idx = _active_index(state, player_id, TurnPhase.DRAW)
        if player_idx is None:
            return state  # Not this player's draw
        if not state.deck:
            return state  # Nothing to draw

        new_deck = list(state.deck)
        card = new_deck.pop()

        player = state.players[player_idx]
        new_players = list(state.players)
        new_players[player_idx] = replace(player, hand=player.hand + [card])

        new_state = replace(
            state, players=new_players, deck=new_deck, phase=TurnPhase.ACTION
        )
        new_state = _with_log(new_state, f"{player.name} drew from stock.")

        _emit(
            EngineEventType.CARD_DRAWN,
            {
                "game_id": state.id,
                "player_id": player_id,
                "player_name": player.name,
                "source": "stock",
                "stock_remaining": len(new_deck),
                "timestamp": new_state.timestamp,
            },
        )

        if not new_deck:
            new_state = _with_log(new_state, "Stock pile is empty. Round finishing...")
            _emit(
                EngineEventType.STOCK_EXHAUSTED,
                {"game_id": state.id, "timestamp": new_state.timestamp},
            )
            return StateTransitionEngine.end_round(new_state, EndType.DECK_EMPTY)

        return new_state

    @staticmethod
    def draw_from_discard(
        state: GameState, player_id: str, hand_indices: Sequence[int]
    ) -> GameState:
        """
        Take the top discard, exposing it at once in a meld with hand cards.

        The discard may only be taken when it completes a set or run with the
        indicated hand cards; it never goes into the hand on its own.

        Args:
            state: Current game state
            player_id: ID of the drawing player
            hand_indices: Indices of the hand cards that meld with the discard

        Returns:
            New game state with the new meld exposed
        """
        player_idx = _active_index(state, player_id, TurnPhase.DRAW)
        if player_idx is None:
            return state  # Not this player's draw
        if not state.discard_pile:
            return state  # Nothing to take

        player = state.players[player_idx]
        hand_indices = list(hand_indices)
        if not _valid_indices(hand_indices, len(player.hand)):
            return state  # Invalid card indices

        top_card = state.discard_pile[-1]
        meld_cards = [player.hand[i] for i in hand_indices] + [top_card]
        if not is_meld(meld_cards):
            return state  # Discard doesn't form a meld

        meld = _new_meld(meld_cards)
        new_player = _open(
            replace(
                player,
                hand=_without(player.hand, hand_indices),
                exposed_melds=player.exposed_melds + [meld],
            )
        )
        new_players = list(state.players)
        new_players[player_idx] = new_player

        new_state = replace(
            state,
            players=new_players,
            discard_pile=state.discard_pile[:-1],
            phase=TurnPhase.ACTION,
        )
        new_state = _with_log(
            new_state, f"{player.name} drew from discard and exposed a meld."
        )

        _emit(
            EngineEventType.CARD_DRAWN,
            {
                "game_id": state.id,
                "player_id": player_id,
                "player_name": player.name,
                "source": "discard",
                "card": str(top_card),
                "timestamp": new_state.timestamp,
            },
        )
        _emit(
            EngineEventType.MELD_EXPOSED,
            {
                "game_id": state.id,
                "player_id": player_id,
                "player_name": player.name,
                "meld": [str(card) for card in meld.cards],
                "timestamp": new_state.timestamp,
            },
        )

        if not new_player.hand:
            return StateTransitionEngine.end_round(
                new_state, EndType.TONGIT, winner_index=player_idx
            )

        return new_state

    @staticmethod
    def discard(state: GameState, player_id: str, card_index: int) -> GameState:
        """
        Discard a card, ending the turn.

        Args:
            state: Current game state
            player_id: ID of the discarding player
            card_index: Index of the card in the player's hand

        Returns:
            New game state with the turn passed to the next seat, or the
            round ended if the hand is now empty
        """
        player_idx = _active_index(state, player_id, TurnPhase.ACTION)
        if player_idx is None:
            return state  # Not this player's action
        player = state.players[player_idx]
        if not _valid_index(card_index, len(player.hand)):
            return state  # Invalid card index

        card = player.hand[card_index]
        new_hand = _without(player.hand, [card_index])
        new_players = list(state.players)
        new_players[player_idx] = replace(player, hand=new_hand, opened_this_turn=False)

        new_state = replace(
            state,
            players=new_players,
            discard_pile=state.discard_pile + [card],
        )
        new_state = _with_log(new_state, f"{player.name} discarded {card}.")

        _emit(
            EngineEventType.CARD_DISCARDED,
            {
                "game_id": state.id,
                "player_id": player_id,
                "player_name": player.name,
                "card": str(card),
                "remaining_hand_size": len(new_hand),
                "timestamp": new_state.timestamp,
            },
        )

        if not new_hand:
            return StateTransitionEngine.end_round(
                new_state, EndType.TONGIT, winner_index=player_idx
            )

        return replace(
            new_state,
            turn_index=(state.turn_index + 1) % len(state.players),
            phase=TurnPhase.DRAW,
        )

    @staticmethod
    def expose_meld(
        state: GameState, player_id: str, card_indices: Sequence[int]
    ) -> GameState:
        """
        Lay a set or run from the hand on the table.

        Args:
            state: Current game state
            player_id: ID of the exposing player
            card_indices: Indices of the hand cards forming the meld

        Returns:
            New game state with the meld exposed
        """
        player_idx = _active_index(state, player_id, TurnPhase.ACTION)
        if player_idx is None:
            return state  # Not this player's action

        player = state.players[player_idx]
        card_indices = list(card_indices)
        if not _valid_indices(card_indices, len(player.hand)):
            return state  # Invalid card indices

        meld_cards = [player.hand[i] for i in card_indices]
        if not is_meld(meld_cards):
            return state  # Not a set or run

        meld = _new_meld(meld_cards)
        new_player = _open(
            replace(
                player,
                hand=_without(player.hand, card_indices),
                exposed_melds=player.exposed_melds + [meld],
            )
        )
        new_players = list(state.players)
        new_players[player_idx] = new_player

        new_state = replace(state, players=new_players)
        new_state = _with_log(new_state, f"{player.name} exposed a meld.")

        _emit(
            EngineEventType.MELD_EXPOSED,
            {
                "game_id": state.id,
                "player_id": player_id,
                "player_name": player.name,
                "meld": [str(card) for card in meld.cards],
                "timestamp": new_state.timestamp,
            },
        )

        if not new_player.hand:
            return StateTransitionEngine.end_round(
                new_state, EndType.TONGIT, winner_index=player_idx
            )

        return new_state

    @staticmethod
    def sapaw(
        state: GameState,
        player_id: str,
        target_player_id: str,
        meld_index: int,
        card_index: int,
    ) -> GameState:
        """
        Lay off a hand card onto an exposed meld (own or an opponent's).

        Args:
            state: Current game state
            player_id: ID of the player laying off
            target_player_id: ID of the meld's owner
            meld_index: Index of the meld among the owner's exposed melds
            card_index: Index of the card in the player's hand

        Returns:
            New game state with the meld extended
        """
        player_idx = _active_index(state, player_id, TurnPhase.ACTION)
        if player_idx is None:
            return state  # Not this player's action

        target_idx = state.find_player_index(target_player_id)
        if target_idx is None:
            return state  # Target player not found

        player = state.players[player_idx]
        target = state.players[target_idx]
        if not _valid_index(meld_index, len(target.exposed_melds)):
            return state  # Invalid meld index
        if not _valid_index(card_index, len(player.hand)):
            return state  # Invalid card index

        card = player.hand[card_index]
        meld = target.exposed_melds[meld_index]
        if not can_lay_off(card, meld.cards):
            return state  # Card doesn't extend the meld

        new_cards = meld.cards + [card]
        if is_run(new_cards):
            new_cards = sort_run(new_cards)
        new_meld = replace(
            meld,
            cards=new_cards,
            is_sapawed_by_others=meld.is_sapawed_by_others or target_idx != player_idx,
        )

        new_players = list(state.players)
        new_player = replace(player, hand=_without(player.hand, [card_index]))
        if target_idx == player_idx:
            target = new_player
        new_melds = list(target.exposed_melds)
        new_melds[meld_index] = new_meld
        new_players[target_idx] = replace(target, exposed_melds=new_melds)
        if target_idx != player_idx:
            new_players[player_idx] = new_player
        new_player = new_players[player_idx]

        new_state = replace(state, players=new_players)
        new_state = _with_log(
            new_state, f"{player.name} sapawed on {target.name}'s meld."
        )

        _emit(
            EngineEventType.CARD_LAID_OFF,
            {
                "game_id": state.id,
                "player_id": player_id,
                "player_name": player.name,
                "target_player_id": target.id,
                "meld_index": meld_index,
                "card": str(card),
                "timestamp": new_state.timestamp,
            },
        )

        if not new_player.hand:
            return StateTransitionEngine.end_round(
                new_state, EndType.TONGIT, winner_index=player_idx
            )

        return new_state

    @staticmethod
    def call_fight(state: GameState, player_id: str) -> GameState:
        """
        Call a fight: end the round in a showdown of unmelded hand weight.

        Only a seat that opened on an earlier turn and still owns a meld no
        one else has laid off onto may call.

        Args:
            state: Current game state
            player_id: ID of the calling player

        Returns:
            New game state with the round ended
        """
        player_idx = _active_index(state, player_id, TurnPhase.ACTION)
        if player_idx is None:
            return state  # Not this player's action

        player = state.players[player_idx]
        if not player.can_call_fight:
            return state  # Not eligible to fight

        new_state = _with_log(state, f"{player.name} called a fight!")

        _emit(
            EngineEventType.FIGHT_CALLED,
            {
                "game_id": state.id,
                "player_id": player_id,
                "player_name": player.name,
                "timestamp": new_state.timestamp,
            },
        )

        return StateTransitionEngine.end_round(
            new_state, EndType.FIGHT, caller_id=player_id
        )

    @staticmethod
    def end_round(
        state: GameState,
        end_type: EndType,
        winner_index: Optional[int] = None,
        caller_id: Optional[str] = None,
    ) -> GameState:
        """
        Terminate the round, pick the winner and settle chips.

        A tongit is won by the seat that emptied its hand. Otherwise the seat
        with the strictly lowest unmelded hand weight wins, ties going to the
        seat holding the best card in settlement order. Losers that never
        opened are burned.

        Args:
            state: Current game state
            end_type: How the round ended
            winner_index: Winning seat for a tongit
            caller_id: Seat that called the fight, if any

        Returns:
            New game state with the round ended and chips settled
        """
        if state.status != GameStatus.PLAYING:
            return state  # No live round

        players = list(state.players)
        weights = [calculate_hand_value(p.hand) for p in players]
        best_cards = [find_best_card(p.hand) for p in players]
        tie_broken = False

        if end_type == EndType.TONGIT:
            if winner_index is None or not _valid_index(winner_index, len(players)):
                return state  # A tongit needs a winner
        else:
            min_weight = min(weights)
            tied = [i for i, weight in enumerate(weights) if weight == min_weight]
            tie_broken = len(tied) > 1
            winner_index = max(
                tied,
                key=lambda i: tie_break_key(best_cards[i]) if best_cards[i] else (0, 0),
            )
            players = [
                p if p.has_opened or i == winner_index else replace(p, is_burned=True)
                for i, p in enumerate(players)
            ]

        players, settlement = settle_round(
            players, winner_index, end_type, state.rules, state.side_pot
        )
        winner = players[winner_index]

        results = RoundResult(
            end_type=end_type,
            winner_id=winner.id,
            players=[
                PlayerResult(
                    id=p.id,
                    name=p.name,
                    weight=weights[i],
                    is_winner=i == winner_index,
                    best_card=best_cards[i],
                )
                for i, p in enumerate(players)
            ],
            settlement=settlement,
            caller_id=caller_id,
        )

        new_state = replace(
            state,
            players=players,
            status=GameStatus.ENDED,
            side_pot=0,
            round_results=results,
            winner_of_previous_round=winner.id,
        )

        if tie_broken:
            new_state = _with_log(
                new_state,
                f"Tie breaker: {winner.name} wins with {best_cards[winner_index]}.",
            )
        if end_type == EndType.TONGIT:
            message = f"Game ended! {winner.name} wins by tongit."
        else:
            message = (
                f"Game ended! {winner.name} wins with least weight "
                f"({weights[winner_index]})."
            )
        new_state = _with_log(new_state, message)

        _emit(
            EngineEventType.ROUND_ENDED,
            {
                "game_id": state.id,
                "round_number": state.round_number,
                "end_type": end_type.value,
                "winner_id": winner.id,
                "winner_name": winner.name,
                "weights": {p.id: weights[i] for i, p in enumerate(players)},
                "timestamp": new_state.timestamp,
            },
        )
        _emit(
            EngineEventType.CHIPS_SETTLED,
            {
                "game_id": state.id,
                "winner_id": winner.id,
                "exchanges": [e.to_dict() for e in settlement.exchanges],
                "winner_total": settlement.winner_total,
                "side_pot_claimed": settlement.side_pot_claimed,
                "balances": {p.id: p.chips for p in players},
                "timestamp": new_state.timestamp,
            },
        )

        return new_state

    @staticmethod
    def apply_action(state: GameState, player_id: str, action: Action) -> GameState:
        """
        Apply a player action to the state.

        Args:
            state: Current game state
            player_id: ID of the acting player
            action: Action to apply

        Returns:
            New game state, or the original state if the action was rejected

        Raises:
            TypeError: If ``action`` is not a known action type
        """
        match action:
            case DrawFromStock():
                return StateTransitionEngine.draw_from_stock(state, player_id)
            case DrawFromDiscard(hand_indices=indices):
                return StateTransitionEngine.draw_from_discard(state, player_id, indices)
            case Discard(card_index=index):
                return StateTransitionEngine.discard(state, player_id, index)
            case ExposeMeld(card_indices=indices):
                return StateTransitionEngine.expose_meld(state, player_id, indices)
            case LayOff(target_player_id=target, meld_index=meld, card_index=card):
                return StateTransitionEngine.sapaw(state, player_id, target, meld, card)
            case CallFight():
                return StateTransitionEngine.call_fight(state, player_id)
            case _:
                raise TypeError(f"Unknown action: {action!r}")
