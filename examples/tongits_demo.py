"""
Example demonstrating the Tongits engine.

This script plays one round of Tongits on the command line: you sit at a
table with two bots, or watch three bots play with ``--bots``.
"""

import asyncio
import sys
from typing import Dict, Any, List, Optional

from tongits.adapters import DummyAdapter
from tongits.engine import TongitsEngine
from tongits.game.actions import (
    CallFight,
    Discard,
    DrawFromDiscard,
    DrawFromStock,
    ExposeMeld,
)
from tongits.game.state import Difficulty, GameState


class TongitsDemo:
    """
    Demo class for the Tongits card game.

    This class provides a simple command-line interface for one round,
    driving the TongitsEngine with a dummy adapter.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, watch: bool = False):
        """
        Initialize the demo.

        Args:
            config: Configuration options for the engine
            watch: Seat three bots instead of a human and two bots
        """
        default_config = {"bot_delay": 0.5}

        if config:
            default_config.update(config)

        self.config = default_config
        self.watch = watch
        self.adapter = DummyAdapter(verbose=False)
        self.engine = TongitsEngine(adapter=self.adapter, config=self.config)
        self.player_id: Optional[str] = None

    async def setup_game(self) -> None:
        """
        Set up the table and deal the round.
        """
        print("Setting up Tongits table...")
        await self.engine.initialize()

        if self.watch:
            for difficulty in Difficulty:
                await self.engine.add_bot(difficulty)
        else:
            name = input("Enter your name (default: Player): ") or "Player"
            self.player_id = await self.engine.add_player(name)
            await self.engine.add_bot(Difficulty.MEDIUM)
            await self.engine.add_bot(Difficulty.HARD)

        await self.engine.start_game()
        dealer = self.engine.state.players[self.engine.state.dealer_index]
        print(f"Round dealt. {dealer.name} deals and starts.")

    async def play_game(self) -> None:
        """
        Play until the round is over.
        """
        while not self.engine.is_round_over():
            await self.engine.run_bot_turns()
            if self.engine.is_round_over():
                break

            view = self.engine.state.redacted_for(self.player_id)
            self._display_state(view)

            valid_actions = self.engine.get_valid_actions(self.player_id)
            action = self._get_user_action(view, valid_actions)
            if not self.engine.execute_player_action(self.player_id, action):
                print("That move is not allowed.")
            await self.engine.render_state()

            print("\n" + "-" * 40)

        self._display_results(self.engine.state)

    def _get_user_action(self, view: GameState, valid_actions: Dict[str, List[Any]]):
        """
        Offer the valid actions and return the one the user picks.
        """
        player = view.get_player(self.player_id)
        options = []

        if "draw_stock" in valid_actions:
            options.append(("Draw from stock", DrawFromStock()))
        for indices in valid_actions.get("draw_discard", []):
            cards = " ".join(str(player.hand[i]) for i in indices)
            options.append((f"Take {view.top_discard} with {cards}", DrawFromDiscard(indices)))
        for indices in valid_actions.get("expose", []):
            cards = " ".join(str(player.hand[i]) for i in indices)
            options.append((f"Expose {cards}", ExposeMeld(indices)))
        for lay_off in valid_actions.get("sapaw", []):
            target = view.get_player(lay_off.target_player_id)
            card = player.hand[lay_off.card_index]
            options.append((f"Sapaw {card} on {target.name}'s meld {lay_off.meld_index + 1}", lay_off))
        if "fight" in valid_actions:
            options.append(("Call a fight", CallFight()))
        for index in valid_actions.get("discard", []):
            options.append((f"Discard {player.hand[index]}", Discard(index)))

        print("Valid actions:")
        for i, (label, _) in enumerate(options):
            print(f"{i + 1}. {label}")

        choice = -1
        while choice < 1 or choice > len(options):
            try:
                choice = int(input(f"Enter your choice (1-{len(options)}): "))
            except ValueError:
                choice = -1

        return options[choice - 1][1]

    def _display_state(self, state: GameState) -> None:
        """
        Display the table as the human seat sees it.
        """
        print(f"\nRound {state.round_number}  Stock: {state.stock_count}  Side pot: {state.side_pot}")
        print(f"Discard: {state.top_discard or '-'}")

        for player in state.players:
            marker = "*" if player is state.current_player else " "
            print(f"{marker} {player.name}: {player.card_count} cards, {player.chips} chips")
            for meld in player.exposed_melds:
                print(f"    {meld.kind}: {' '.join(str(c) for c in meld.cards)}")

        me = state.get_player(self.player_id)
        print(f"\nYour hand: {' '.join(str(c) for c in me.hand)}")

    def _display_results(self, state: GameState) -> None:
        results = state.round_results
        print(f"\nRound over ({results.end_type.value})!")
        for line in results.players:
            flag = " (winner)" if line.is_winner else ""
            print(f"  {line.name}: weight {line.weight}{flag}")
        for exchange in results.settlement.exchanges:
            payer = state.get_player(exchange.from_id)
            print(f"  {payer.name} pays {exchange.amount}")
        print(f"  Side pot claimed: {results.settlement.side_pot_claimed}")
        for entry in state.logs[-5:]:
            print(f"  > {entry.message}")

    async def shutdown(self) -> None:
        await self.engine.shutdown()
        print("Game shut down.")


async def main():
    """
    Main function to run the demo.
    """
    config = {}

    if "--seed" in sys.argv:
        idx = sys.argv.index("--seed")
        if idx + 1 < len(sys.argv):
            try:
                config["seed"] = int(sys.argv[idx + 1])
            except ValueError:
                pass

    watch = "--bots" in sys.argv
    if watch:
        config["bot_delay"] = 0

    demo = TongitsDemo(config, watch=watch)

    try:
        await demo.setup_game()
        await demo.play_game()
    finally:
        await demo.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
