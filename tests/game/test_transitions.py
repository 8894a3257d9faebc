"""
Tests for the pure state transitions.
"""

import random
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from tongits.common.card import Card
from tongits.events import EventBus, EngineEventType
from tongits.game import bot
from tongits.game.actions import Discard, DrawFromStock
from tongits.game.state import (
    Difficulty,
    EndType,
    GameState,
    GameStatus,
    PlayerKind,
    TongitsRules,
    TurnPhase,
)
from tongits.game.transitions import StateTransitionEngine


@pytest.fixture
def full_table():
    state = GameState()
    for name in ("Alice", "Bob", "Carol"):
        state = StateTransitionEngine.add_player(state, name, player_id=name.lower())
    return state


@pytest.fixture
def dealt(full_table):
    return StateTransitionEngine.start_round(full_table, random.Random(11))


def test_add_player(full_table):
    assert [p.id for p in full_table.players] == ["alice", "bob", "carol"]
    assert all(p.chips == 100 for p in full_table.players)
    assert all(p.difficulty is None for p in full_table.players)


def test_add_player_rejects_full_table(full_table):
    assert StateTransitionEngine.add_player(full_table, "Dave") is full_table


def test_add_player_rejects_duplicate_id():
    state = StateTransitionEngine.add_player(GameState(), "Alice", player_id="a")
    assert StateTransitionEngine.add_player(state, "Alice again", player_id="a") is state


def test_add_player_rejects_live_round(dealt):
    state = StateTransitionEngine.remove_player(dealt, "carol")
    live = replace(state, status=GameStatus.PLAYING)
    assert StateTransitionEngine.add_player(live, "Dave") is live


def test_bots_default_to_medium():
    state = StateTransitionEngine.add_player(GameState(), "Bot", kind=PlayerKind.BOT)
    assert state.players[0].difficulty == Difficulty.MEDIUM
    assert state.players[0].is_bot


def test_add_player_emits_event():
    callback = MagicMock()
    EventBus.get_instance().on(EngineEventType.PLAYER_JOINED, callback)

    StateTransitionEngine.add_player(GameState(), "Alice", player_id="a")

    callback.assert_called_once()
    assert callback.call_args[0][0]["player_id"] == "a"


def test_start_round_needs_full_table():
    state = StateTransitionEngine.add_player(GameState(), "Alice")
    assert StateTransitionEngine.start_round(state, random.Random(1)) is state


def test_start_round_deals_twelve_and_thirteen(dealt):
    dealer = dealt.dealer_index
    counts = [p.card_count for p in dealt.players]

    assert counts[dealer] == 13
    assert sorted(counts) == [12, 12, 13]
    assert dealt.stock_count == 52 - 37
    assert dealt.turn_index == dealer
    assert dealt.phase == TurnPhase.ACTION
    assert dealt.status == GameStatus.PLAYING
    assert dealt.round_number == 1
    assert dealt.total_cards() == 52


def test_start_round_collects_antes(dealt):
    assert all(p.chips == 98 for p in dealt.players)
    assert dealt.side_pot == 6


def test_start_round_rejected_while_live(dealt):
    assert StateTransitionEngine.start_round(dealt, random.Random(2)) is dealt


def test_seeded_deal_repeats(full_table):
    first = StateTransitionEngine.start_round(full_table, random.Random(5))
    second = StateTransitionEngine.start_round(full_table, random.Random(5))
    assert [p.hand for p in first.players] == [p.hand for p in second.players]
    assert first.dealer_index == second.dealer_index


def test_dealer_discard_passes_turn_then_next_seat_draws(dealt):
    dealer = dealt.players[dealt.dealer_index]

    state = StateTransitionEngine.discard(dealt, dealer.id, 0)
    assert state.players[dealt.dealer_index].card_count == 12
    assert state.top_discard == dealer.hand[0]
    next_index = (dealt.dealer_index + 1) % 3
    assert state.turn_index == next_index
    assert state.phase == TurnPhase.DRAW
    assert state.total_cards() == 52

    next_id = state.players[next_index].id
    drawn = StateTransitionEngine.draw_from_stock(state, next_id)
    assert drawn.phase == TurnPhase.ACTION
    assert drawn.players[next_index].card_count == 13
    assert drawn.players[next_index].hand[-1] == state.deck[-1]
    assert drawn.stock_count == state.stock_count - 1
    assert drawn.total_cards() == 52


def test_commands_from_other_seats_are_rejected(dealt):
    other = dealt.players[(dealt.dealer_index + 1) % 3]
    assert StateTransitionEngine.discard(dealt, other.id, 0) is dealt
    assert StateTransitionEngine.draw_from_stock(dealt, other.id) is dealt
    assert StateTransitionEngine.discard(dealt, "nobody", 0) is dealt


def test_commands_in_wrong_phase_are_rejected(dealt):
    dealer = dealt.players[dealt.dealer_index]
    assert StateTransitionEngine.draw_from_stock(dealt, dealer.id) is dealt
    assert StateTransitionEngine.draw_from_discard(dealt, dealer.id, (0, 1)) is dealt


@pytest.mark.parametrize("index", [-1, 13, 99, True, "0", None])
def test_discard_rejects_invalid_index(dealt, index):
    dealer = dealt.players[dealt.dealer_index]
    assert StateTransitionEngine.discard(dealt, dealer.id, index) is dealt


def test_commands_rejected_outside_a_round(full_table):
    assert StateTransitionEngine.draw_from_stock(full_table, "alice") is full_table
    assert StateTransitionEngine.discard(full_table, "alice", 0) is full_table


def test_expose_set(make_state):
    state = make_state(["A♠ A♥ A♦ 5♣ 9♦", "2♠ 3♦ 8♣", "4♥ 6♣ J♦"])

    new_state = StateTransitionEngine.expose_meld(state, "p1", (0, 1, 2))

    player = new_state.players[0]
    assert player.card_count == 2
    assert player.has_opened
    assert player.opened_this_turn
    assert len(player.exposed_melds) == 1
    assert player.exposed_melds[0].kind == "set"
    assert [str(c) for c in player.hand] == ["5♣", "9♦"]
    assert new_state.total_cards() == 52
    assert new_state.phase == TurnPhase.ACTION


def test_expose_run_is_sorted(make_state):
    state = make_state(["6♥ 4♥ 5♥ 9♦", "2♠", "4♠"])
    new_state = StateTransitionEngine.expose_meld(state, "p1", (0, 1, 2))
    meld = new_state.players[0].exposed_melds[0]
    assert meld.kind == "run"
    assert [str(c) for c in meld.cards] == ["4♥", "5♥", "6♥"]


@pytest.mark.parametrize("indices", [(0, 1, 3), (0, 0, 1), (0, 1), (), (0, 1, 9)])
def test_expose_rejects_bad_meld(make_state, indices):
    state = make_state(["A♠ A♥ A♦ 5♣ 9♦", "2♠", "4♠"])
    assert StateTransitionEngine.expose_meld(state, "p1", indices) is state


def test_expose_whole_hand_is_tongit(make_state):
    state = make_state(["A♠ A♥ A♦", "2♠ 3♦ 8♣", "4♥ 6♣ J♦"])

    new_state = StateTransitionEngine.expose_meld(state, "p1", (0, 1, 2))

    assert new_state.status == GameStatus.ENDED
    assert new_state.round_results.end_type == EndType.TONGIT
    assert new_state.round_results.winner_id == "p1"
    assert new_state.winner_of_previous_round == "p1"
    assert new_state.total_cards() == 52


def test_draw_from_discard_exposes_meld(make_state):
    state = make_state(
        ["8♥ 9♥ K♣ 2♦", "2♠", "4♠"], discard="5♠ 10♥", phase=TurnPhase.DRAW
    )

    new_state = StateTransitionEngine.draw_from_discard(state, "p1", (0, 1))

    player = new_state.players[0]
    assert [str(c) for c in player.hand] == ["K♣", "2♦"]
    assert [str(c) for c in player.exposed_melds[0].cards] == ["8♥", "9♥", "10♥"]
    assert player.has_opened
    assert [str(c) for c in new_state.discard_pile] == ["5♠"]
    assert new_state.phase == TurnPhase.ACTION
    assert new_state.total_cards() == 52


def test_draw_from_discard_requires_a_meld(make_state):
    state = make_state(
        ["8♥ 9♥ K♣ 2♦", "2♠", "4♠"], discard="10♥", phase=TurnPhase.DRAW
    )
    assert StateTransitionEngine.draw_from_discard(state, "p1", (0, 2)) is state
    assert StateTransitionEngine.draw_from_discard(state, "p1", (0,)) is state
    assert StateTransitionEngine.draw_from_discard(state, "p1", (0, 0)) is state


def test_draw_from_empty_discard_is_rejected(make_state):
    state = make_state(["8♥ 9♥ K♣", "2♠", "4♠"], phase=TurnPhase.DRAW)
    assert StateTransitionEngine.draw_from_discard(state, "p1", (0, 1)) is state


def test_draw_from_discard_emptying_hand_is_tongit(make_state):
    state = make_state(["8♥ 9♥", "2♠ K♦", "4♠ Q♣"], discard="10♥", phase=TurnPhase.DRAW)

    new_state = StateTransitionEngine.draw_from_discard(state, "p1", (0, 1))

    assert new_state.status == GameStatus.ENDED
    assert new_state.round_results.end_type == EndType.TONGIT
    assert new_state.round_results.winner_id == "p1"


def test_discarding_last_card_is_tongit(make_state):
    state = make_state(["5♣", "2♠ K♦", "4♠ Q♣"], melds=[["7♠ 7♥ 7♦"], [], []])

    new_state = StateTransitionEngine.discard(state, "p1", 0)

    assert new_state.status == GameStatus.ENDED
    assert new_state.round_results.winner_id == "p1"
    assert new_state.top_discard == Card.from_str("5♣")
    assert new_state.total_cards() == 52


def test_discard_clears_opened_this_turn(make_state):
    state = make_state(
        ["5♣ 9♦", "2♠", "4♠"], melds=[["7♠ 7♥ 7♦"], [], []], opened_this_turn=[True, False, False]
    )
    new_state = StateTransitionEngine.discard(state, "p1", 0)
    assert not new_state.players[0].opened_this_turn
    assert new_state.players[0].has_opened


def test_sapaw_onto_opponent_meld(make_state):
    state = make_state(["7♣ 2♦ 9♠", "2♠ 3♦", "4♠"], melds=[[], ["7♠ 7♥ 7♦"], []])

    new_state = StateTransitionEngine.sapaw(state, "p1", "p2", 0, 0)

    meld = new_state.players[1].exposed_melds[0]
    assert len(meld.cards) == 4
    assert meld.is_sapawed_by_others
    assert [str(c) for c in new_state.players[0].hand] == ["2♦", "9♠"]
    assert new_state.total_cards() == 52


def test_sapaw_onto_own_run(make_state):
    state = make_state(["3♥ K♠", "2♠", "4♠"], melds=[["4♥ 5♥ 6♥"], [], []])

    new_state = StateTransitionEngine.sapaw(state, "p1", "p1", 0, 0)

    player = new_state.players[0]
    meld = player.exposed_melds[0]
    assert [str(c) for c in meld.cards] == ["3♥", "4♥", "5♥", "6♥"]
    assert not meld.is_sapawed_by_others
    assert [str(c) for c in player.hand] == ["K♠"]
    assert new_state.total_cards() == 52


@pytest.mark.parametrize(
    "target, meld_index, card_index",
    [("p2", 0, 1), ("p2", 1, 0), ("p2", -1, 0), ("p9", 0, 0), ("p3", 0, 0), ("p2", 0, 5)],
)
def test_sapaw_rejections(make_state, target, meld_index, card_index):
    state = make_state(["7♣ 2♦", "2♠", "4♠"], melds=[[], ["7♠ 7♥ 7♦"], []])
    assert StateTransitionEngine.sapaw(state, "p1", target, meld_index, card_index) is state


def test_sapaw_last_card_is_tongit(make_state):
    state = make_state(["7♣", "2♠", "4♠"], melds=[[], ["7♠ 7♥ 7♦"], []])
    new_state = StateTransitionEngine.sapaw(state, "p1", "p2", 0, 0)
    assert new_state.status == GameStatus.ENDED
    assert new_state.round_results.end_type == EndType.TONGIT


def fight_state(make_state, **kwargs):
    return make_state(
        ["2♣ 3♦", "K♠ Q♦ 9♣", "J♥ 10♠"], melds=[["7♠ 7♥ 7♦"], [], []], **kwargs
    )


def test_call_fight(make_state):
    state = fight_state(make_state)

    new_state = StateTransitionEngine.call_fight(state, "p1")

    results = new_state.round_results
    assert new_state.status == GameStatus.ENDED
    assert results.end_type == EndType.FIGHT
    assert results.winner_id == "p1"
    assert results.caller_id == "p1"
    assert [r.weight for r in results.players] == [5, 29, 20]
    assert [p.is_burned for p in new_state.players] == [False, True, True]
    # 3 challenged + 1 burned from each loser, plus the side pot
    assert [e.amount for e in results.settlement.exchanges] == [4, 4]
    assert [p.chips for p in new_state.players] == [114, 96, 96]
    assert new_state.side_pot == 0


def test_fight_caller_can_lose(make_state):
    state = make_state(
        ["K♣ 3♦", "A♠", "J♥ 10♠"], melds=[["7♠ 7♥ 7♦"], ["4♦ 5♦ 6♦"], []]
    )

    new_state = StateTransitionEngine.call_fight(state, "p1")

    assert new_state.round_results.winner_id == "p2"
    assert new_state.round_results.caller_id == "p1"
    assert [p.is_burned for p in new_state.players] == [False, False, True]


def test_fight_rejected_when_opened_this_turn(make_state):
    state = fight_state(make_state, opened_this_turn=[True, False, False])
    assert StateTransitionEngine.call_fight(state, "p1") is state


def test_fight_rejected_when_every_meld_was_sapawed(make_state):
    state = fight_state(make_state, sapawed=[True, False, False])
    assert StateTransitionEngine.call_fight(state, "p1") is state


def test_fight_rejected_without_opening(make_state):
    state = make_state(["2♣ 3♦", "K♠", "J♥"])
    assert StateTransitionEngine.call_fight(state, "p1") is state


def test_fight_rejected_out_of_turn(make_state):
    state = fight_state(make_state, turn_index=1)
    assert StateTransitionEngine.call_fight(state, "p1") is state


def test_fight_emits_events(make_state):
    fired = []
    EventBus.get_instance().on_any(lambda event: fired.append(event[0]))

    StateTransitionEngine.call_fight(fight_state(make_state), "p1")

    assert fired[0] == "FIGHT_CALLED"
    assert "ROUND_ENDED" in fired
    assert fired[-1] == "CHIPS_SETTLED"


def test_drawing_last_card_ends_round(make_state):
    state = make_state(
        ["2♣ 3♦", "K♠ Q♦", "10♥"], deck="9♣", phase=TurnPhase.DRAW
    )
    exhausted = MagicMock()
    EventBus.get_instance().on(EngineEventType.STOCK_EXHAUSTED, exhausted)

    new_state = StateTransitionEngine.draw_from_stock(state, "p1")

    exhausted.assert_called_once()
    results = new_state.round_results
    assert new_state.status == GameStatus.ENDED
    assert new_state.stock_count == 0
    assert results.end_type == EndType.DECK_EMPTY
    assert results.winner_id == "p3"
    assert [r.weight for r in results.players] == [14, 20, 10]
    assert [p.is_burned for p in new_state.players] == [True, True, False]
    # 1 base + 1 burned from each loser
    assert [p.chips for p in new_state.players] == [98, 98, 110]


def test_tie_break_queen_beats_king(make_state):
    state = make_state(
        ["Q♦", "K♠", "9♣ 8♣"], deck="2♥", phase=TurnPhase.DRAW, turn_index=2
    )

    new_state = StateTransitionEngine.draw_from_stock(state, "p3")

    results = new_state.round_results
    assert [r.weight for r in results.players] == [10, 10, 19]
    assert results.winner_id == "p1"
    assert results.players[0].best_card == Card.from_str("Q♦")
    assert any("Tie breaker" in entry.message for entry in new_state.logs)


def test_draw_from_empty_stock_is_rejected(make_state):
    state = make_state(["2♣", "K♠", "9♣"], deck="", phase=TurnPhase.DRAW)
    assert StateTransitionEngine.draw_from_stock(state, "p1") is state


def test_tongit_payments(make_state):
    state = make_state(["A♠ A♥ A♦", "2♠ 3♦ 8♣", "4♥ 6♣ J♦"], melds=[[], ["4♠ 5♠ 6♠"], []])

    new_state = StateTransitionEngine.expose_meld(state, "p1", (0, 1, 2))

    # 3 challenged + 3 aces, plus 1 burned from the seat that never opened
    assert [e.amount for e in new_state.round_results.settlement.exchanges] == [6, 7]
    assert [p.chips for p in new_state.players] == [119, 94, 93]


def test_end_round_ignores_finished_rounds(make_state):
    state = replace(make_state(["2♣", "K♠", "9♣"]), status=GameStatus.ENDED)
    assert StateTransitionEngine.end_round(state, EndType.FIGHT) is state


def test_next_round_is_dealt_by_previous_winner(make_state):
    ended = StateTransitionEngine.call_fight(fight_state(make_state), "p1")

    state = StateTransitionEngine.start_round(ended, random.Random(3))

    assert state.dealer_index == 0
    assert state.turn_index == 0
    assert state.round_number == 2
    assert state.round_results is None
    assert state.players[0].card_count == 13
    assert not any(p.is_burned for p in state.players)
    assert state.side_pot == 6


def test_remove_player_abandons_live_round(dealt):
    state = StateTransitionEngine.remove_player(dealt, "bob")

    assert state.status == GameStatus.LOBBY
    assert [p.id for p in state.players] == ["alice", "carol"]
    assert all(p.card_count == 0 for p in state.players)
    assert state.stock_count == 0
    assert state.discard_pile == []
    assert state.side_pot == 6


def test_remove_unknown_player(full_table):
    assert StateTransitionEngine.remove_player(full_table, "nobody") is full_table


def test_reset_keeps_id_and_rules():
    rules = TongitsRules(ante=5)
    state = StateTransitionEngine.add_player(GameState(rules=rules), "Alice")

    reset = StateTransitionEngine.reset(state)

    assert reset.id == state.id
    assert reset.rules == rules
    assert reset.players == []


def test_logs_are_capped(make_state):
    state = replace(
        make_state(["5♣ 9♦ 2♥", "2♠", "4♠"]), rules=TongitsRules(log_limit=1)
    )
    state = StateTransitionEngine.discard(state, "p1", 0)
    state = StateTransitionEngine.draw_from_stock(state, "p2")
    assert len(state.logs) == 1
    assert state.logs[0].message == "Player 2 drew from stock."


def test_apply_action_rejects_unknown_action(dealt):
    with pytest.raises(TypeError):
        StateTransitionEngine.apply_action(dealt, "alice", "discard")


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize(
    "difficulties",
    [
        [Difficulty.EASY] * 3,
        [Difficulty.MEDIUM] * 3,
        [Difficulty.HARD] * 3,
        [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD],
    ],
)
def test_bot_rounds_conserve_cards(seed, difficulties):
    rng = random.Random(seed)
    state = GameState()
    for i, difficulty in enumerate(difficulties):
        state = StateTransitionEngine.add_player(
            state, f"Bot {i}", kind=PlayerKind.BOT, difficulty=difficulty
        )
    state = StateTransitionEngine.start_round(state, rng)

    for _ in range(1000):
        if state.status != GameStatus.PLAYING:
            break
        player = state.current_player
        view = state if player.difficulty == Difficulty.HARD else state.redacted_for(player.id)
        action = bot.decide(view.get_player(player.id), view, rng)
        new_state = StateTransitionEngine.apply_action(state, player.id, action)
        assert new_state is not state, f"bot chose an illegal {action!r}"
        state = new_state
        assert state.total_cards() == 52

    assert state.status == GameStatus.ENDED
    exchanges = state.round_results.settlement.exchanges
    winner_gain = state.round_results.settlement.winner_total
    assert sum(e.amount for e in exchanges) == winner_gain
    assert sum(p.chips for p in state.players) == 300


def test_draw_and_discard_through_apply_action(dealt):
    dealer = dealt.players[dealt.dealer_index]
    state = StateTransitionEngine.apply_action(dealt, dealer.id, Discard(0))
    next_player = state.current_player
    state = StateTransitionEngine.apply_action(state, next_player.id, DrawFromStock())
    assert state.phase == TurnPhase.ACTION
    assert state.current_player.card_count == 13
