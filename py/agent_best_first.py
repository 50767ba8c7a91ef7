import argparse
import concurrent.futures
import logging
import sys
import time

from actions import HELP_TEXT, ParseError
from klondike import NUM_COLUMNS, NUM_FOUNDATIONS, Facing, GameState, IllegalMoveError
from move_log import read_move_log, replay, write_move_log
from solver import Play, Solver, SolverConfig


def render_text(state: GameState) -> str:
    """Plain-text board: stock and waste, foundations, then the columns side by side."""
    waste = " ".join(str(card) for card in state.waste()) or "--"
    foundations = " ".join(str(state.foundation(i) or "--") for i in range(NUM_FOUNDATIONS))
    lines = [
        f"Game {state.game_number}  score {state.score}",
        f"Stock: {state.stock_size()}  Waste: {waste}",
        f"Foundations: {foundations}",
        "  ".join(f"{i + 1:>4}" for i in range(NUM_COLUMNS)),
    ]
    depth = max(len(state.tableau(i)) for i in range(NUM_COLUMNS))
    for row in range(depth):
        cells = []
        for column in range(NUM_COLUMNS):
            cards = state.tableau(column)
            if row >= len(cards):
                cells.append("    ")
            elif cards[row][1] == Facing.DOWN:
                cells.append(" ###")
            else:
                cells.append(f"{cards[row][0]!s:>4}")
        lines.append(f"{chr(ord('A') + row)} " + "  ".join(cells).rstrip())
    return "\n".join(lines)


def play_game(game_number: int, config: SolverConfig, max_rounds: int | None = None) -> Play:
    solver = Solver(GameState.new(game_number), config)
    return solver.solve(max_rounds=max_rounds)


def play_game_wrapper(game_number: int, config: SolverConfig, max_rounds: int | None) -> tuple[int, bool, int, int]:
    best = play_game(game_number, config, max_rounds)
    return game_number, best.state.is_win(), best.score, len(best.moves)


def play_multiple_games(
    first_game: int,
    num_games: int,
    config: SolverConfig,
    max_rounds: int | None = None,
    game_parallelism: int = 1,
) -> None:
    start_time = time.time()
    wins = 0
    total_score = 0
    games_completed = 0

    with concurrent.futures.ProcessPoolExecutor(max_workers=game_parallelism) as executor:
        futures = [
            executor.submit(play_game_wrapper, game_number, config, max_rounds)
            for game_number in range(first_game, first_game + num_games)
        ]
        for future in concurrent.futures.as_completed(futures):
            games_completed += 1
            print(f"Playing games... {games_completed}/{num_games}", end="\r")
            _game_number, won, score, _moves = future.result()
            if won:
                wins += 1
            total_score += score

    duration = time.time() - start_time
    print(f"\nResults from {num_games} games:")
    print(f"Win rate: {wins / num_games * 100:.2f}% ({wins}/{num_games})")
    print(f"Average score: {total_score / num_games:.2f}")
    print(f"Time taken: {duration:.2f} seconds ({duration / num_games:.2f} seconds per game)")
    print(
        f"Configuration: expand={config.expand}, stalled_rounds={config.stalled_rounds}, "
        f"escalation={config.escalation_fraction}, recycle={config.recycle_waste}",
    )


def replay_log(path: str, game_number: int | None) -> int:
    try:
        logged_game, actions = read_move_log(path)
    except OSError as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        return 1
    except ParseError as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        print(HELP_TEXT, file=sys.stderr)
        return 1

    if logged_game is None and game_number is None:
        print("The log has no game number; pass --game-number", file=sys.stderr)
        return 1
    state = GameState.new(logged_game if logged_game is not None else game_number)
    try:
        replay(actions, state)
    except IllegalMoveError as exc:
        print(f"Illegal move in {path}: {exc}", file=sys.stderr)
        print(render_text(state))
        return 1

    print(render_text(state))
    print(f"Replayed {len(actions)} moves: score {state.score}, {'won' if state.is_win() else 'not won'}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Solve Klondike Solitaire with an escalating best-first search")
    parser.add_argument("--game-number", type=int, default=None, help="Game number to deal (default: 1)")
    parser.add_argument("--games", type=int, default=1, help="Number of consecutive games to solve (default: 1)")
    parser.add_argument("--expand", type=int, default=200, help="Plays expanded per round (default: 200)")
    parser.add_argument(
        "--stalled-rounds",
        type=int,
        default=20,
        help="Rounds without a better score before escalating or stopping (default: 20)",
    )
    parser.add_argument(
        "--escalation-fraction",
        type=float,
        default=0.25,
        help="Share of the fringe expanded per round when escalated (default: 0.25)",
    )
    parser.add_argument(
        "--recycle-waste",
        action="store_true",
        help="Let the search draw from an empty stock by recycling the waste",
    )
    parser.add_argument("--max-rounds", type=int, default=None, help="Stop each search after this many rounds")
    parser.add_argument(
        "--game-parallelism",
        type=int,
        default=1,
        help="Number of games to solve in parallel (default: 1)",
    )
    parser.add_argument(
        "--save-log",
        default=None,
        help="Write the best play's moves to this file (may not replay exactly, since positions reached "
        "with columns in a different order share one move history)",
    )
    parser.add_argument("--replay", default=None, help="Replay a move log instead of solving")
    parser.add_argument("--verbose", action="store_true", help="Log search progress")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.replay is not None:
        return replay_log(args.replay, args.game_number)

    try:
        config = SolverConfig(
            expand=args.expand,
            stalled_rounds=args.stalled_rounds,
            escalation_fraction=args.escalation_fraction,
            recycle_waste=args.recycle_waste,
        )
    except ValueError as exc:
        parser.error(str(exc))

    game_number = 1 if args.game_number is None else args.game_number
    if args.games > 1:
        play_multiple_games(game_number, args.games, config, args.max_rounds, args.game_parallelism)
        return 0

    best = play_game(game_number, config, args.max_rounds)
    print(render_text(best.state))
    print(f"Game {'won' if best.state.is_win() else 'lost'}: score {best.score} in {len(best.moves)} moves")
    print(" ".join(action.to_notation() for action in best.moves))
    if args.save_log is not None:
        write_move_log(args.save_log, best.moves, game_number)
        print(f"Moves written to {args.save_log}")
        print("Note: merged routes can make the log diverge from this board on replay", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
