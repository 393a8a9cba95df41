"""
Turn Pipeline — compiled LangGraph graph over the fixed node order.

Every node runs on every turn, left to right. A node that fails the turn
sets `failure=True` on the context; later nodes still run but hand the
failed context straight back (see GraphNode.execute), so the trace always
lists the whole order.

Usage:
    pipeline = build_turn_pipeline(build_default_nodes())
    outcome = await pipeline.run(context)
"""

import random
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from langgraph.graph import END, StateGraph

from models.context import GraphContext
from pipeline.nodes.base import GraphNode
from pipeline.nodes.beat_detector_node import BeatDetectorNode
from pipeline.nodes.beat_tracker_node import BeatTrackerNode
from pipeline.nodes.character_update_node import CharacterUpdateNode
from pipeline.nodes.check_planner_node import CheckPlannerNode
from pipeline.nodes.gm_summary_node import GmSummaryNode
from pipeline.nodes.intake_node import IntakeNode
from pipeline.nodes.intent_handler_nodes import build_intent_handlers
from pipeline.nodes.inventory_delta_node import InventoryDeltaNode
from pipeline.nodes.location_delta_node import LocationDeltaNode
from pipeline.nodes.skill_detector_node import SkillDetectorNode
from pipeline.state import TurnState
from tools.telemetry import safe_record

logger = logging.getLogger("pipeline.graph")

DEFAULT_NODE_ORDER: Tuple[str, ...] = (
    "intake",
    "beat-detector",
    "skill-detector",
    "check-planner",
    "action-resolver",
    "inquiry-responder",
    "clarification-responder",
    "possibility-advisor",
    "planning-narrator",
    "reflection-weaver",
    "location-delta",
    "gm-summary",
    "beat-tracker",
    "inventory-delta",
    "character-update",
)


@dataclass
class TurnOutcome:
    context: GraphContext
    executed_nodes: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.context.failure


async def _run_node(state: TurnState, *, node: GraphNode) -> dict:
    """Run one node against the state's context and record the transition."""
    context = state["context"]
    was_failed = context.failure
    _transition(context, node.id, "start")
    try:
        next_context = await node.execute(context)
    except Exception:
        _transition(context, node.id, "error")
        raise

    if was_failed:
        status = "skipped"
    elif next_context.failure:
        status = "error"
    else:
        status = "success"
    _transition(next_context, node.id, status)
    return {"context": next_context, "executed_nodes": [node.id]}


def _transition(context: GraphContext, node_id: str, status: str) -> None:
    safe_record(
        context.telemetry,
        "record_transition",
        chronicle_id=context.chronicle_id,
        turn_sequence=context.turn_sequence,
        node_id=node_id,
        status=status,
    )


def validate_order(nodes: Dict[str, GraphNode], order: Sequence[str]) -> None:
    """Raise ValueError unless `order` places every node exactly once."""
    if not order:
        raise ValueError("Node order is empty")
    duplicates = sorted({node_id for node_id in order if list(order).count(node_id) > 1})
    if duplicates:
        raise ValueError(f"Duplicate node ids in order: {duplicates}")
    unknown = [node_id for node_id in order if node_id not in nodes]
    if unknown:
        raise ValueError(f"Unknown node ids in order: {unknown}")
    missing = [node_id for node_id in nodes if node_id not in order]
    if missing:
        raise ValueError(f"Nodes missing from order: {missing}")


class TurnPipeline:
    """A compiled turn graph plus the order it was built with."""

    def __init__(self, compiled, order: Sequence[str]):
        self.compiled = compiled
        self.order = tuple(order)

    async def run(self, context: GraphContext) -> TurnOutcome:
        state = await self.compiled.ainvoke(
            {"context": context, "executed_nodes": []},
            config={"recursion_limit": len(self.order) + 5},
        )
        return TurnOutcome(context=state["context"], executed_nodes=list(state["executed_nodes"]))


def build_default_nodes(
    refine_checks: bool = True,
    dice_mode: str = "advantage",
    rng: Optional[random.Random] = None,
) -> List[GraphNode]:
    """The standard node set, one instance per id in DEFAULT_NODE_ORDER."""
    return [
        IntakeNode(),
        BeatDetectorNode(),
        SkillDetectorNode(),
        CheckPlannerNode(refine=refine_checks, dice_mode=dice_mode, rng=rng),
        *build_intent_handlers(),
        LocationDeltaNode(),
        GmSummaryNode(),
        BeatTrackerNode(),
        InventoryDeltaNode(),
        CharacterUpdateNode(),
    ]


def build_turn_pipeline(
    nodes: Union[Iterable[GraphNode], Dict[str, GraphNode]],
    order: Sequence[str] = DEFAULT_NODE_ORDER,
) -> TurnPipeline:
    """Build and compile the linear turn graph.

    Args:
        nodes: Node instances (or a dict keyed by node id).
        order: Node ids in execution order.

    Returns:
        A TurnPipeline wrapping the compiled LangGraph graph.

    Raises:
        ValueError: if the order names unknown ids or leaves nodes out.
    """
    if not isinstance(nodes, dict):
        nodes = {node.id: node for node in nodes}
    validate_order(nodes, order)

    graph = StateGraph(TurnState)
    for node_id in order:
        graph.add_node(node_id, partial(_run_node, node=nodes[node_id]))

    graph.set_entry_point(order[0])
    for current, following in zip(order, order[1:]):
        graph.add_edge(current, following)
    graph.add_edge(order[-1], END)

    compiled = graph.compile()
    logger.info(f"Turn pipeline compiled ({len(order)} nodes).")
    return TurnPipeline(compiled, order)


async def run_turn(context: GraphContext, pipeline: Optional[TurnPipeline] = None) -> TurnOutcome:
    """Run one turn through `pipeline` (default node set if omitted)."""
    pipeline = pipeline or build_turn_pipeline(build_default_nodes())
    return await pipeline.run(context)
