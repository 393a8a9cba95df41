"""
GraphNode — the contract every pipeline step honours.

`execute()` is the single entry point the orchestrator calls. It owns the
failure short-circuit: once a context carries `failure=True`, every later
node hands it back untouched. Subclasses implement `run()` and only ever
see healthy contexts.
"""

from abc import ABC, abstractmethod
from typing import Optional

from models.context import GraphContext
from tools.telemetry import safe_record


class GraphNode(ABC):
    """Base class for pipeline nodes."""

    id: str = ""

    async def execute(self, context: GraphContext) -> GraphContext:
        if context.failure:
            safe_record(
                context.telemetry,
                "record_tool_not_run",
                operation=self.operation,
                chronicle_id=context.chronicle_id,
            )
            return context
        return await self.run(context)

    @abstractmethod
    async def run(self, context: GraphContext) -> GraphContext:
        ...

    @property
    def operation(self) -> str:
        return f"llm.{self.id}"

    def report_error(
        self,
        context: GraphContext,
        error: Exception,
        operation: Optional[str] = None,
        reference_id: Optional[str] = None,
        attempt: int = 0,
    ) -> None:
        safe_record(
            context.telemetry,
            "record_tool_error",
            operation=operation or self.operation,
            chronicle_id=context.chronicle_id,
            attempt=attempt,
            message=str(error) or type(error).__name__,
            reference_id=reference_id,
        )

    def metadata(self, context: GraphContext) -> dict:
        return {"chronicle_id": context.chronicle_id, "node_id": self.id}
