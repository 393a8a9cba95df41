"""
Prompt composers for the turn pipeline.

Pure functions: they read the chronicle snapshot and the turn's mechanics
and return a prompt string. No I/O, no model calls.

The six intent handlers share one payload builder and differ only in the
instructions block. The check planner and the auxiliary nodes each get
their own composer.
"""

from typing import Callable, Dict, List, Optional

from models.chronicle import ChronicleState, TranscriptEntry
from models.intent import Intent
from models.skill_check import SkillCheckPlan, SkillCheckResult

RECENT_TURN_LIMIT = 6
COMPLICATION_OUTCOMES = {"stall", "regress", "collapse"}

GM_IDENTITY = """You are the Game Master of a collaborative chronicle.
Write in second person, present tense. Keep to what the character can perceive.
Never decide the player's choices for them. Never mention dice, numbers or rules."""

IntentPromptComposer = Callable[
    [ChronicleState, Intent, Optional[SkillCheckPlan], Optional[SkillCheckResult], str, int],
    str,
]


# ---------------------------------------------------------------------------
# Shared scene description
# ---------------------------------------------------------------------------

def truncate_text(text: str, limit: int) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def describe_location(chronicle_state: ChronicleState) -> str:
    if chronicle_state.location is None:
        return "an unknown place"
    return chronicle_state.location.describe()


def describe_beats(chronicle_state: ChronicleState) -> List[str]:
    chronicle = chronicle_state.chronicle
    if not chronicle.beats_enabled:
        return []
    return [
        f"{index}. {beat.title} — {beat.description or 'no details yet'} ({beat.status})"
        for index, beat in enumerate(chronicle.beats, start=1)
    ]


def recent_events(turns: List[TranscriptEntry], limit: int = RECENT_TURN_LIMIT) -> str:
    if not turns:
        return "This is the opening turn."
    lines = []
    for entry in turns[-limit:]:
        speaker = {"player": "Player", "gm": "GM"}.get(entry.role, "System")
        lines.append(f"- {speaker}: {truncate_text(entry.content, 240)}")
    return "\n".join(lines)


def wrap_up_directive(chronicle_state: ChronicleState, turn_sequence: int) -> str:
    target = chronicle_state.chronicle.target_end_turn
    if target is None:
        return ""
    remaining = max(target - turn_sequence, 0)
    if remaining == 0:
        return "This is the final turn of the chronicle. Bring the story to a close."
    return f"The chronicle should wrap up within {remaining} more turn(s). Steer toward resolution."


def _character_block(chronicle_state: ChronicleState) -> str:
    character = chronicle_state.character
    if character is None:
        return "**Character:** unknown"
    tags = ", ".join(character.tags) if character.tags else "untagged"
    return (
        f"**Character:** {character.name} ({character.pronouns or 'they/them'})\n"
        f"**Tags:** {tags}\n"
        f"**Momentum:** {character.momentum.current:+d}"
    )


def _mechanics_block(
    intent: Intent,
    check_plan: Optional[SkillCheckPlan],
    check_result: Optional[SkillCheckResult],
) -> str:
    if check_plan is None:
        return "No skill check was made this turn."

    lines = [
        f"**Move:** {check_plan.move} ({check_plan.ability}, {check_plan.risk_level})",
        f"**Skill:** {intent.skill or 'untrained'}",
    ]
    if check_result is not None:
        lines.append(f"**Outcome:** {check_result.outcome_tier}")
        if check_result.outcome_tier in COMPLICATION_OUTCOMES and check_plan.complication_seeds:
            seeds = "; ".join(check_plan.complication_seeds)
            lines.append(f"**Weave in a complication:** {seeds}")
    else:
        lines.append("**Outcome:** unresolved — narrate the attempt without a verdict.")
    return "\n".join(lines)


def _scene_payload(
    chronicle_state: ChronicleState,
    intent: Intent,
    check_plan: Optional[SkillCheckPlan],
    check_result: Optional[SkillCheckResult],
    player_message: str,
    turn_sequence: int,
) -> str:
    beats = describe_beats(chronicle_state)
    beat_text = "\n".join(beats) if beats else "No active beats."
    wrap = wrap_up_directive(chronicle_state, turn_sequence)

    return f"""## Scene
{_character_block(chronicle_state)}
**Location:** {describe_location(chronicle_state)}

## Active Beats
{beat_text}

## Recent Events
{recent_events(chronicle_state.turns)}

## Mechanics
{_mechanics_block(intent, check_plan, check_result)}

## This Turn (#{turn_sequence})
**Player:** {truncate_text(player_message, 500)}
**Intent:** {intent.intent_summary or 'unspecified'} (tone: {intent.tone})
{wrap}"""


# ---------------------------------------------------------------------------
# Intent handler composers
# ---------------------------------------------------------------------------

_HANDLER_INSTRUCTIONS: Dict[str, str] = {
    "action": (
        "Resolve the attempted action. Let the outcome drive the prose: a breakthrough "
        "lands cleanly, a stall leaves things hanging, a collapse costs something real. "
        "End on a moment that invites the next move. 2-3 paragraphs."
    ),
    "inquiry": (
        "Answer what the character is looking into. Describe only what they can perceive "
        "or already know. Do not advance time. 1-2 paragraphs."
    ),
    "clarification": (
        "The player is asking about something already established. Restate it plainly "
        "from the recent events. Do not invent new facts. A few sentences."
    ),
    "possibility": (
        "The player is weighing an option. Lay out what seems feasible and what it might "
        "cost, without resolving it. Do not advance time. 1-2 paragraphs."
    ),
    "planning": (
        "Narrate the preparation, travel or rest the player describes, compressing time "
        "as needed. Close on where things stand afterwards. 1-2 paragraphs."
    ),
    "reflection": (
        "Give the character's inner moment room to breathe. Mirror it in the scene's "
        "texture. Do not advance time. 1 paragraph."
    ),
}


def _compose_handler_prompt(mode: str) -> IntentPromptComposer:
    instructions = _HANDLER_INSTRUCTIONS[mode]

    def compose(
        chronicle_state: ChronicleState,
        intent: Intent,
        check_plan: Optional[SkillCheckPlan],
        check_result: Optional[SkillCheckResult],
        player_message: str,
        turn_sequence: int,
    ) -> str:
        payload = _scene_payload(
            chronicle_state, intent, check_plan, check_result, player_message, turn_sequence
        )
        return f"{payload}\n\n---\n\n{instructions}"

    compose.__name__ = f"compose_{mode}_prompt"
    return compose


compose_action_resolver_prompt = _compose_handler_prompt("action")
compose_inquiry_responder_prompt = _compose_handler_prompt("inquiry")
compose_clarification_responder_prompt = _compose_handler_prompt("clarification")
compose_possibility_advisor_prompt = _compose_handler_prompt("possibility")
compose_planning_narrator_prompt = _compose_handler_prompt("planning")
compose_reflection_weaver_prompt = _compose_handler_prompt("reflection")


# ---------------------------------------------------------------------------
# Check planner
# ---------------------------------------------------------------------------

def compose_check_planner_prompt(
    chronicle_state: ChronicleState,
    intent: Intent,
    check_plan: Optional[SkillCheckPlan],
    check_result: Optional[SkillCheckResult],
    player_message: str,
    turn_sequence: int,
) -> str:
    """Ask for a partial patch over the heuristic plan."""
    baseline = "none"
    if check_plan is not None:
        baseline = (
            f"move={check_plan.move}, ability={check_plan.ability}, "
            f"risk_level={check_plan.risk_level}, advantage={check_plan.advantage}"
        )

    return f"""{_character_block(chronicle_state)}
**Location:** {describe_location(chronicle_state)}
**Player (turn #{turn_sequence}):** {truncate_text(player_message, 500)}
**Intent:** {intent.intent_summary} (skill: {intent.skill or 'none'}, attribute: {intent.attribute or 'none'})
**Heuristic plan:** {baseline}

Adjust the heuristic plan only where the fiction demands it. Respond with a JSON object
containing any of: "move", "ability", "risk_level" (controlled|standard|risky|desperate),
"advantage" (advantage|disadvantage|none), "bonus_dice" (0-2), "rationale" (one sentence),
"complication_seeds" (list of short strings). Omit fields you would not change."""


# ---------------------------------------------------------------------------
# Auxiliary nodes
# ---------------------------------------------------------------------------

def compose_intent_prompt(chronicle_state: ChronicleState, player_message: str) -> str:
    open_beats = [
        f"- {beat.id}: {beat.title}"
        for beat in chronicle_state.chronicle.beats
        if beat.status == "in_progress"
    ]
    skills = ", ".join(chronicle_state.character.skills) if chronicle_state.character else ""
    return f"""## Recent Events
{recent_events(chronicle_state.turns)}

## Open Beats
{chr(10).join(open_beats) if open_beats else 'none'}

## Known Skills
{skills or 'none'}

## Player Message
{player_message}

Classify the message. Respond with a JSON object:
{{"intent_type": "action|inquiry|clarification|possibility|planning|reflection",
  "requires_check": bool, "skill": str, "attribute": str, "creative_spark": bool,
  "intent_summary": str, "tone": str, "handler_hints": [str], "router_confidence": 0..1,
  "beat_directive": {{"kind": "existing|new|independent", "summary": str, "target_beat_id": str|null}}}}"""


def compose_skill_detector_prompt(chronicle_state: ChronicleState, intent: Intent, player_message: str) -> str:
    character = chronicle_state.character
    skills = []
    if character is not None:
        skills = [f"- {name} ({skill.attribute}, {skill.tier})" for name, skill in character.skills.items()]
    return f"""## Character Skills
{chr(10).join(skills) if skills else 'none'}

## Player Message
{player_message}

**Current read:** skill={intent.skill or 'none'}, attribute={intent.attribute or 'none'}

Pick the single skill the character is leaning on (a known one if it fits, otherwise a short
new name) and the attribute it tests. Respond with JSON: {{"skill": str, "attribute": str}}"""


def compose_location_delta_prompt(chronicle_state: ChronicleState, intent: Intent, gm_message: str) -> str:
    location = chronicle_state.location
    adjacent = ", ".join(location.adjacent) if location and location.adjacent else "none"
    children = ", ".join(location.children) if location and location.children else "none"
    parent = (location.parent if location else None) or "none"
    return f"""**Current location:** {describe_location(chronicle_state)}
**Parent:** {parent}
**Adjacent:** {adjacent}
**Inside:** {children}

**Player intent:** {intent.intent_summary}
**GM response:** {truncate_text(gm_message, 1200)}

Did the character end this turn somewhere else? Respond with JSON:
{{"action": "no_change|move", "destination": str, "link": "same|adjacent|inside|linked"}}"""


def compose_gm_summary_prompt(
    chronicle_state: ChronicleState,
    intent: Intent,
    check_result: Optional[SkillCheckResult],
    gm_message: str,
    turn_sequence: int,
) -> str:
    outcome = check_result.outcome_tier if check_result else "no check"
    return f"""**Turn #{turn_sequence}** — {intent.intent_summary} ({outcome})

**GM response:**
{truncate_text(gm_message, 1500)}

{wrap_up_directive(chronicle_state, turn_sequence)}

Summarise the turn in one or two sentences for the chronicle log. Respond with JSON:
{{"summary": str, "should_close_chronicle": bool}}"""


def compose_beat_tracker_prompt(chronicle_state: ChronicleState, intent: Intent, gm_message: str) -> str:
    beats = describe_beats(chronicle_state)
    directive = intent.beat_directive
    return f"""## Beats
{chr(10).join(beats) if beats else 'none'}

**Directive:** {directive.kind} {directive.target_beat_id or ''} {directive.summary or ''}
**GM response:** {truncate_text(gm_message, 1200)}

Update the beats this turn touched. Respond with JSON:
{{"updates": [{{"beat_id": str, "status": "in_progress|succeeded|failed", "description": str}}],
  "should_start_new_beat": bool, "new_beat_title": str|null, "new_beat_description": str|null}}"""


def compose_inventory_delta_prompt(chronicle_state: ChronicleState, intent: Intent, gm_message: str) -> str:
    character = chronicle_state.character
    items = []
    if character is not None:
        items = [f"- {item.name} x{item.quantity}" for item in character.inventory.items]
    return f"""## Inventory
{chr(10).join(items) if items else 'empty'}

**Player intent:** {intent.intent_summary}
**GM response:** {truncate_text(gm_message, 1200)}

List only inventory changes the GM response makes explicit. Respond with JSON:
{{"ops": [{{"op": "add|remove|equip|unequip|consume", "item": str, "quantity": int, "slot": str|null}}]}}"""
