"""
Hexdice CLI - Command-line interface for the engine.

Usage:
    hexdice odds <attacker> <defender>   Outcome distribution of an attack
    hexdice bestmove                     Best move on a generated board
    hexdice play                         Bots play a generated game to the end
    hexdice serve                        Run the REST API (needs uvicorn)
"""

import argparse
import logging
import random
import sys

from .engine_core import attacker_win_probability, get_ruleset, resolve_combat, roll_distribution
from .errors import EngineError, InvalidOption

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Hexdice - Hex-grid dice strategy decision engine",
        prog="hexdice",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Odds command
    odds_parser = subparsers.add_parser("odds", help="Outcome distribution of an attack")
    odds_parser.add_argument("attacker", type=int, help="Dice committed by the attacker")
    odds_parser.add_argument("defender", type=int, help="Dice on the defending cell")
    odds_parser.add_argument("--ruleset", default="classic", help="Named rule preset")
    odds_parser.add_argument("--single", action="store_true", help="Only one exchange")

    # Best move command
    best_parser = subparsers.add_parser("bestmove", help="Best move on a generated board")
    _add_board_arguments(best_parser)
    best_parser.add_argument("--player", help="Player to move (default: first seated)")
    best_parser.add_argument("--heuristic", default="balanced", help="Personality name")

    # Play command
    play_parser = subparsers.add_parser("play", help="Bots play a generated game")
    _add_board_arguments(play_parser)
    play_parser.add_argument("--max-steps", type=int, default=200, help="Move limit")
    play_parser.add_argument(
        "--seats", nargs="*", default=[],
        help="player=kind pairs; kind is random, first or a personality",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    commands = {
        "odds": cmd_odds,
        "bestmove": cmd_bestmove,
        "play": cmd_play,
        "serve": cmd_serve,
    }
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)

    try:
        commands[args.command](args)
    except EngineError as e:
        print(f"Error: {e}")
        for problem in e.errors[1:]:
            print(f"  - {problem}")
        sys.exit(1)


def _add_board_arguments(parser):
    parser.add_argument("--columns", type=int, default=3, help="Board width")
    parser.add_argument("--rows", type=int, default=2, help="Board height")
    parser.add_argument("--players", nargs="+", default=["red", "blue"], help="Player names")
    parser.add_argument("--seed", type=int, help="Seed for the board and the dice")
    parser.add_argument("--depth", type=int, default=2, help="Search depth in plies")
    parser.add_argument("--ruleset", default="classic", help="Named rule preset")


def _print_board(board):
    for cell in board:
        holding = f"{cell.owner} x{cell.dice}" if cell.is_owned else "-"
        print(f"  {cell.coordinate}: {holding}")


def cmd_odds(args):
    """Print the outcome distribution of an attack."""
    rules = get_ruleset(args.ruleset)
    if args.single:
        distribution = roll_distribution(args.attacker, args.defender, rules)
    else:
        distribution = resolve_combat(args.attacker, args.defender, rules)

    kind = "one exchange" if args.single else "battle"
    print(f"{args.attacker} vs {args.defender} ({rules.name}, {kind}):")
    for loss, probability in distribution.items():
        print(f"  attacker -{loss.attacker_lost}, defender -{loss.defender_lost}: {probability:.4f}")
    if not args.single:
        win = attacker_win_probability(args.attacker, args.defender, rules)
        print(f"Capture probability: {win:.4f}")


def cmd_bestmove(args):
    """Search a generated board and print the ranking."""
    from .search import SearchConfig, search
    from .session import random_board

    rules = get_ruleset(args.ruleset)
    board = random_board(args.columns, args.rows, args.players, rng=random.Random(args.seed))
    player = args.player or args.players[0]

    print("Board:")
    _print_board(board)

    config = SearchConfig(search_depth=args.depth, heuristic=args.heuristic, rules=rules)
    result = search(board, player, config)

    print(f"\nBest move for {player}: {result.move} (score {result.score:.4f})")
    for move, score in result.move_scores:
        print(f"  {score:+.4f}  {move}")
    stats = result.stats
    print(
        f"\n{stats.nodes} nodes, {stats.hits} cache hits, "
        f"efficiency {stats.efficiency:.2f}, {stats.elapsed:.3f}s"
    )


def cmd_play(args):
    """Let bots play a generated game."""
    from .search import SearchConfig
    from .session import SessionManager

    seats = {}
    for pair in args.seats:
        player, _, kind = pair.partition("=")
        if not kind:
            raise InvalidOption(f"Seat '{pair}' is not player=kind")
        seats[player] = kind

    rules = get_ruleset(args.ruleset)
    manager = SessionManager(default_config=SearchConfig(search_depth=args.depth, rules=rules))
    session = manager.create_session(
        seats=seats,
        columns=args.columns,
        rows=args.rows,
        players=tuple(args.players),
        rules=rules,
        seed=args.seed,
    )
    loop = session.loop

    print(f"Session {session.session_id}")
    _print_board(loop.board)
    print()

    for number, result in enumerate(loop.run(max_steps=args.max_steps), start=1):
        print(f"{number:3d}. {result.describe()}")

    print(f"\nResult: {loop.progression.value}")
    if loop.winner is not None:
        print(f"Winner: {loop.winner}")
    _print_board(loop.board)
    manager.end_session(session.session_id, reason="completed")


def cmd_serve(args):
    """Run the REST API."""
    import uvicorn

    uvicorn.run("hexdice.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
