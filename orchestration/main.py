"""
Chronicle Turn Engine — command-line entry point.

Resolves a single player message against a chronicle snapshot stored as
JSON (a serialized ChronicleState) and prints the narration, the check
outcome and any pending world deltas.

To run:
    python orchestration/main.py chronicle.json "I sneak past the sentry"
"""

import os
import sys
import json
import asyncio
import logging
import argparse
from dataclasses import replace

# Allow `python orchestration/main.py` from the repo root.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.chronicle import ChronicleState  # noqa: E402
from orchestration.turn_engine import TurnEngine, TurnRecord  # noqa: E402
from tools.config import load_settings  # noqa: E402
from tools.llm_client import GeminiModelClient  # noqa: E402

logger = logging.getLogger("ChronicleCLI")


def configure_logging(verbose: bool = False) -> None:
    if not os.path.exists("logs"):
        os.makedirs("logs")

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler("logs/chronicle_engine.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve one player message against a chronicle snapshot.",
    )
    parser.add_argument("chronicle", help="Path to a ChronicleState JSON file.")
    parser.add_argument("message", help="The player's message for this turn.")
    parser.add_argument(
        "--dice-mode",
        choices=("advantage", "keep_drop"),
        help="Override GM_DICE_MODE for this run.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full TurnRecord as JSON instead of a summary.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def print_record(record: TurnRecord) -> None:
    print()
    print("=" * 56)
    print(f"  TURN {record.turn_sequence}  ({record.handler_id or 'no handler'})")
    print("=" * 56)

    if record.skill_check_result is not None:
        result = record.skill_check_result
        print(f"  Check: {result.detail}")
        print(f"  Outcome: {result.outcome_tier} (margin {result.margin:+d}, momentum -> {result.new_momentum})")
        print()

    if record.gm_message is not None:
        print(record.gm_message.content)
    elif record.system_message is not None:
        print(record.system_message.content)

    if record.gm_summary:
        print()
        print(f"  Summary: {record.gm_summary}")
    if record.inventory_store_delta is not None:
        ops = ", ".join(f"{op.op} {op.item} x{op.quantity}" for op in record.inventory_store_delta.ops)
        print(f"  Inventory: {ops}")
    if record.location_plan is not None:
        print(f"  Location: {record.location_plan.notes}")
    if record.failure:
        print("  (turn failed)")
    print()


async def run(args) -> int:
    settings = load_settings()
    if args.dice_mode:
        settings = replace(settings, dice_mode=args.dice_mode)

    if not settings.gemini_api_key:
        logger.error("GEMINI_API_KEY not set. Add it to .env or the environment.")
        return 1

    with open(args.chronicle, "r", encoding="utf-8") as f:
        chronicle_state = ChronicleState.model_validate(json.load(f))

    engine = TurnEngine(llm=GeminiModelClient.from_settings(settings), settings=settings)
    record = await engine.handle_player_message(chronicle_state, args.message)

    if args.json:
        print(record.model_dump_json(indent=2))
    else:
        print_record(record)
    return 1 if record.failure else 0


def main() -> None:
    args = build_parser().parse_args()
    configure_logging(args.verbose)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
