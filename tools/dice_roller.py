"""
Dice Roller — pooled d6 roller with advantage/disadvantage selection.

Every check rolls 2d6 + modifier. Advantage and disadvantage come from the
request flags and the character's momentum; when both apply they cancel and
a single standard roll is made.

Two selection modes:
    'advantage' — roll two independent 2d6+mod totals, keep the higher
                  (advantage) or the lower (disadvantage).
    'keep_drop' — roll one pooled (2 + extra) d6, sort descending, sum the
                  best/worst 2, then add the modifier once. Extra is the
                  plan's bonus dice, never fewer than one.
"""

import random
import logging
from typing import Iterable, List, Optional

logger = logging.getLogger("DiceRoller")

ADVANTAGE_FLAGS = {"creative-spark", "advantage"}
DISADVANTAGE_FLAGS = {"disadvantage"}
MODES = ("advantage", "keep_drop")


class DiceRoller:
    """Rolls one check. Holds the dice it rolled so callers can report them.

    Args:
        flags: Request flags (e.g. 'creative-spark', 'disadvantage').
        momentum: The character's current momentum.
        mode: 'advantage' or 'keep_drop'.
        bonus_dice: Extra pool dice for keep_drop (ignored in advantage mode).
        rng: Source of randomness. Defaults to the `random` module.
    """

    num_dice = 2
    die_size = 6
    extra_dice = 1

    def __init__(
        self,
        flags: Iterable[str] = (),
        momentum: int = 0,
        mode: str = "advantage",
        rng: Optional[random.Random] = None,
        bonus_dice: int = 0,
    ):
        if mode not in MODES:
            raise ValueError(f"Unknown dice mode: {mode}")
        self.extra_dice = max(self.extra_dice, bonus_dice)
        self.flags = set(flags)
        self.momentum = momentum
        self.mode = mode
        self._rng = rng or random
        wants_advantage = self._should_apply_advantage()
        wants_disadvantage = self._should_apply_disadvantage()
        self.advantage = wants_advantage and not wants_disadvantage
        self.disadvantage = wants_disadvantage and not wants_advantage
        self.rolls: List[int] = []
        self.result: Optional[int] = None

    def _should_apply_advantage(self) -> bool:
        return bool(self.flags & ADVANTAGE_FLAGS) or self.momentum >= 2

    def _should_apply_disadvantage(self) -> bool:
        return bool(self.flags & DISADVANTAGE_FLAGS) or self.momentum <= -2

    def roll_dice(self, extra: int = 0) -> List[int]:
        return [self._rng.randint(1, self.die_size) for _ in range(self.num_dice + extra)]

    def compute_result(self, modifier: int) -> int:
        """Roll the check and return the kept total including the modifier."""
        if not (self.advantage or self.disadvantage):
            dice = self.roll_dice()
            self.rolls = dice
            self.result = sum(dice) + modifier
        elif self.mode == "keep_drop":
            pool = sorted(self.roll_dice(self.extra_dice), reverse=True)
            kept = pool[: self.num_dice] if self.advantage else pool[-self.num_dice:]
            self.rolls = pool
            self.result = sum(kept) + modifier
        else:
            first = self.roll_dice()
            second = self.roll_dice()
            self.rolls = first + second
            totals = (sum(first) + modifier, sum(second) + modifier)
            self.result = max(totals) if self.advantage else min(totals)

        logger.debug(f"Rolled {self.rolls} mod {modifier:+d} -> {self.result}")
        return self.result

    @property
    def selection(self) -> str:
        if self.advantage:
            return "advantage"
        if self.disadvantage:
            return "disadvantage"
        return "standard"


def format_roll_detail(roller: DiceRoller, modifier: int) -> str:
    """Format a finished roll into a human-readable detail string.

    Example: '2d6+3: [4, 2]+3 = 9' or '2d6-1 (advantage): [5, 3, 2, 6]-1 = 10'
    """
    if roller.result is None:
        return "not rolled"
    mod_str = f"{modifier:+d}" if modifier else ""
    label = f"{roller.num_dice}d{roller.die_size}{mod_str}"
    if roller.selection != "standard":
        label += f" ({roller.selection})"
    rolls_str = ", ".join(str(r) for r in roller.rolls)
    return f"{label}: [{rolls_str}]{mod_str} = {roller.result}"
