"""
Immutable state models for the Tongits card game.

This module provides dataclasses for representing the state of a Tongits
round in an immutable manner. These classes are designed to be used with the
pure transition functions in ``tongits.game.transitions``, which create new
state instances rather than modifying existing ones.
"""

from dataclasses import dataclass, field, replace
from typing import List, Dict, Any, Optional
from enum import Enum, auto
import uuid
import time

from tongits.common.card import Card, Rank
from tongits.game.constants import SEATS_PER_TABLE
from tongits.game.melds import is_set


class GameStatus(Enum):
    """Lifecycle of a table."""

    LOBBY = "lobby"
    PLAYING = "playing"
    ENDED = "ended"


class TurnPhase(Enum):
    """Phase within the active seat's turn."""

    DRAW = "draw"
    ACTION = "action"


class PlayerKind(Enum):
    HUMAN = "human"
    BOT = "bot"


class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class EndType(Enum):
    """How a round terminated."""

    TONGIT = "tongit"
    DECK_EMPTY = "deck-empty"
    FIGHT = "fight"

    @property
    def is_challenged(self) -> bool:
        """Tongit and fight endings pay the higher base rate."""
        return self in (EndType.TONGIT, EndType.FIGHT)


@dataclass(frozen=True)
class TongitsRules:
    """
    Immutable representation of the table rules.

    Attributes:
        max_players: Seats at the table; a round needs all of them filled
        starting_chips: Chip balance of a newly seated player
        ante: Chips each seat pays into the side pot when a round starts
        hand_size: Cards dealt to each seat (the dealer gets one more)
        base_payment: Per-loser payment when the stock runs out
        challenged_payment: Per-loser payment after a tongit or a fight
        ace_bonus: Extra payment per ace the winner holds
        secret_meld_bonus: Extra payment per secret meld the winner holds
        burned_penalty: Extra payment from a burned or unopened loser
        log_limit: Number of round log entries kept
    """

    max_players: int = SEATS_PER_TABLE
    starting_chips: int = 100
    ante: int = 2
    hand_size: int = 12
    base_payment: int = 1
    challenged_payment: int = 3
    ace_bonus: int = 1
    secret_meld_bonus: int = 3
    burned_penalty: int = 1
    log_limit: int = 50


@dataclass(frozen=True)
class Meld:
    """
    Immutable representation of an exposed meld.

    Attributes:
        cards: Cards in the meld; runs are kept sorted by rank
        is_secret: Whether the meld earns the secret meld bonus
        is_sapawed_by_others: Whether another seat has laid off onto it
    """

    cards: List[Card] = field(default_factory=list)
    is_secret: bool = False
    is_sapawed_by_others: bool = False

    @property
    def kind(self) -> str:
        return "set" if is_set(self.cards) else "run"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cards": [card.to_dict() for card in self.cards],
            "kind": self.kind,
            "isSecret": self.is_secret,
            "isSapawedByOthers": self.is_sapawed_by_others,
        }


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable representation of a seat.

    Attributes:
        id: Unique identifier for this player
        name: Display name of the player
        kind: Human or bot
        difficulty: Bot strategy tier (bots only)
        hand: Cards in the player's hand
        exposed_melds: Melds the player has laid on the table
        chips: Chip balance, may go negative
        has_opened: Whether the player has exposed a meld this round
        opened_this_turn: Whether that first meld came during the current turn
        is_burned: Penalty status applied at settlement
        concealed_count: Hand size when ``hand`` is hidden from the viewer
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Player"
    kind: PlayerKind = PlayerKind.HUMAN
    difficulty: Optional[Difficulty] = None
    hand: List[Card] = field(default_factory=list)
    exposed_melds: List[Meld] = field(default_factory=list)
    chips: int = 100
    has_opened: bool = False
    opened_this_turn: bool = False
    is_burned: bool = False
    concealed_count: Optional[int] = None

    @property
    def card_count(self) -> int:
        """Get the number of cards in the player's hand."""
        if self.concealed_count is not None:
            return self.concealed_count
        return len(self.hand)

    @property
    def is_bot(self) -> bool:
        return self.kind == PlayerKind.BOT

    @property
    def is_hand_hidden(self) -> bool:
        return self.concealed_count is not None

    @property
    def can_call_fight(self) -> bool:
        """
        Whether the seat qualifies for a showdown, turn and phase aside.

        The seat must have opened on an earlier turn and still own a meld
        nobody else has laid off onto.
        """
        return (
            self.has_opened
            and not self.opened_this_turn
            and any(not meld.is_sapawed_by_others for meld in self.exposed_melds)
        )

    def ace_count(self) -> int:
        """Aces held in hand and in exposed melds."""
        in_hand = sum(1 for card in self.hand if card.rank == Rank.ACE)
        in_melds = sum(
            1
            for meld in self.exposed_melds
            for card in meld.cards
            if card.rank == Rank.ACE
        )
        return in_hand + in_melds

    def to_dict(self, reveal_hand: bool = True) -> Dict[str, Any]:
        show = reveal_hand and not self.is_hand_hidden
        return {
            "id": self.id,
            "name": self.name,
            "type": self.kind.value,
            "difficulty": self.difficulty.value if self.difficulty else None,
            "handCount": self.card_count,
            "hand": [card.to_dict() for card in self.hand] if show else [],
            "exposedMelds": [meld.to_dict() for meld in self.exposed_melds],
            "chips": self.chips,
            "hasOpened": self.has_opened,
            "openedThisTurn": self.opened_this_turn,
            "isBurned": self.is_burned,
        }


@dataclass(frozen=True)
class LogEntry:
    message: str
    timestamp: float = field(default_factory=lambda: time.time())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": time.strftime("%H:%M:%S", time.localtime(self.timestamp)),
            "message": self.message,
        }


@dataclass(frozen=True)
class PlayerResult:
    """A seat's line in the round result."""

    id: str
    name: str
    weight: int
    is_winner: bool
    best_card: Optional[Card] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "isWinner": self.is_winner,
            "bestCard": self.best_card.to_dict() if self.best_card else None,
        }


@dataclass(frozen=True)
class ChipExchange:
    """A payment from a losing seat to the winner."""

    from_id: str
    to_id: str
    amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_id, "to": self.to_id, "amount": self.amount}


@dataclass(frozen=True)
class Settlement:
    """Chip movements produced when a round is settled."""

    exchanges: List[ChipExchange] = field(default_factory=list)
    winner_total: int = 0
    side_pot_claimed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exchanges": [exchange.to_dict() for exchange in self.exchanges],
            "winnerTotal": self.winner_total,
            "sidePotClaimed": self.side_pot_claimed,
        }


@dataclass(frozen=True)
class RoundResult:
    """
    Outcome of a terminated round.

    Attributes:
        end_type: How the round ended
        winner_id: ID of the winning seat
        players: Per-seat weights, best cards and winner flags
        settlement: Chip exchanges applied for this round
        caller_id: Seat that called the fight, for fight endings
    """

    end_type: EndType
    winner_id: str
    players: List[PlayerResult] = field(default_factory=list)
    settlement: Settlement = field(default_factory=Settlement)
    caller_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.end_type.value,
            "winnerId": self.winner_id,
            "callerId": self.caller_id,
            "players": [player.to_dict() for player in self.players],
            "settlement": self.settlement.to_dict(),
        }


@dataclass(frozen=True)
class GameState:
    """
    Immutable representation of a Tongits table and its live round.

    Attributes:
        id: Unique identifier for this table
        players: Seats in turn order
        deck: Stock pile; the top card is the last element
        discard_pile: Discarded cards; the top card is the last element
        turn_index: Index of the seat whose command is legal
        dealer_index: Index of this round's dealer
        phase: Phase of the active seat's turn
        status: Lobby, playing or ended
        side_pot: Antes collected and not yet awarded
        round_results: Outcome of the last terminated round
        winner_of_previous_round: ID of the seat that deals next
        round_number: Number of rounds started at this table
        logs: Bounded log of what happened this round
        rules: Rules for this table
        concealed_stock: Stock size when ``deck`` is hidden from the viewer
        timestamp: Time when this state was created
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    players: List[PlayerState] = field(default_factory=list)
    deck: List[Card] = field(default_factory=list)
    discard_pile: List[Card] = field(default_factory=list)
    turn_index: int = 0
    dealer_index: int = 0
    phase: TurnPhase = TurnPhase.DRAW
    status: GameStatus = GameStatus.LOBBY
    side_pot: int = 0
    round_results: Optional[RoundResult] = None
    winner_of_previous_round: Optional[str] = None
    round_number: int = 0
    logs: List[LogEntry] = field(default_factory=list)
    rules: TongitsRules = field(default_factory=TongitsRules)
    concealed_stock: Optional[int] = None
    timestamp: float = field(default_factory=lambda: time.time())

    @property
    def stock_count(self) -> int:
        """Get the number of cards left in the stock."""
        if self.concealed_stock is not None:
            return self.concealed_stock
        return len(self.deck)

    @property
    def is_playing(self) -> bool:
        return self.status == GameStatus.PLAYING

    @property
    def current_player(self) -> Optional[PlayerState]:
        """Get the player whose command is currently legal."""
        if 0 <= self.turn_index < len(self.players):
            return self.players[self.turn_index]
        return None

    @property
    def top_discard(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None

    def find_player_index(self, player_id: str) -> Optional[int]:
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return None

    def get_player(self, player_id: str) -> Optional[PlayerState]:
        index = self.find_player_index(player_id)
        return self.players[index] if index is not None else None

    def total_cards(self) -> int:
        """Cards across stock, discard pile, hands and exposed melds."""
        return (
            self.stock_count
            + len(self.discard_pile)
            + sum(player.card_count for player in self.players)
            + sum(
                len(meld.cards)
                for player in self.players
                for meld in player.exposed_melds
            )
        )

    def redacted_for(self, viewer_id: Optional[str]) -> "GameState":
        """
        The state as seen from one seat.

        Other seats' hands and the stock order are hidden; their sizes stay
        available through ``card_count`` and ``stock_count``. Once the round
        has ended every hand is revealed.
        """
        reveal_all = self.status == GameStatus.ENDED
        players = [
            player
            if reveal_all or player.id == viewer_id or player.is_hand_hidden
            else replace(player, hand=[], concealed_count=len(player.hand))
            for player in self.players
        ]
        return replace(
            self, players=players, deck=[], concealed_stock=self.stock_count
        )

    def to_dict(
        self, viewer_id: Optional[str] = None, omniscient: bool = False
    ) -> Dict[str, Any]:
        """
        Convert the state to a per-viewer dictionary suitable for serialization.

        Args:
            viewer_id: Seat whose hand is shown in full
            omniscient: Show every hand; for hard bot decisions only

        Returns:
            Dictionary representation of the state
        """
        reveal_all = omniscient or self.status == GameStatus.ENDED
        return {
            "id": self.id,
            "players": [
                player.to_dict(reveal_hand=reveal_all or player.id == viewer_id)
                for player in self.players
            ],
            "discardPile": [card.to_dict() for card in self.discard_pile],
            "turnIndex": self.turn_index,
            "phase": self.phase.value,
            "dealerIndex": self.dealer_index,
            "stockCount": self.stock_count,
            "sidePot": self.side_pot,
            "status": self.status.value,
            "roundNumber": self.round_number,
            "roundResults": (
                self.round_results.to_dict() if self.round_results else None
            ),
            "logs": [entry.to_dict() for entry in self.logs],
        }
