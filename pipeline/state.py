"""
TurnState — the typed state that flows through the LangGraph turn pipeline.

The whole per-turn working state lives in one frozen GraphContext; each
node replaces it. `executed_nodes` is append-only: LangGraph concatenates
every node's contribution through the `operator.add` reducer.
"""

import operator
from typing import Annotated, List, TypedDict

from models.context import GraphContext


class TurnState(TypedDict):
    """State flowing through the turn pipeline.

    Fields:
        context:        The current GraphContext.
        executed_nodes: Ids of the nodes that ran, in order.
    """
    context: GraphContext
    executed_nodes: Annotated[List[str], operator.add]
