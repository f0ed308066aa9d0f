# ============================================================================
# src/prescription_resolution/core/agent_base.py
# ============================================================================
"""
Abstract Base Agent Class

The catalog- and classifier-facing resolution stages inherit from this
base class (ExactMatchResolver, AttributeClassifier, CandidateSearcher,
MatchScorer).

Every agent must implement:
- execute(context): Main processing logic for one prescription line
- get_name(): Agent identifier

Every agent gets:
- Logging
- Error handling (a failing agent degrades its line, never the prescription)
- Execution metrics
"""

from abc import ABC, abstractmethod
from typing import Dict, Any
import logging
from datetime import datetime

from ..core.context.line_context import LineContext
from ..core.config import get_config
from ..utils.logging import LogAdapter


class Agent(ABC):
    """
    Abstract base class for per-line resolution agents.

    Design principles:
    1. Single responsibility - each agent does ONE stage of resolution
    2. Context-based communication - read from and write to the LineContext
    3. Error resilience - collaborator failures don't crash the prescription
    """

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize agent with configuration.

        Args:
            config: Configuration dictionary (passed config overrides env defaults)
        """
        env_config = get_config()
        self.config = {**env_config, **(config or {})}
        self.logger = logging.getLogger(f"{__name__}.{self.get_name()}")
        self._execution_count = 0
        self._failure_count = 0
        self._total_duration = 0.0

    @abstractmethod
    async def execute(self, context: LineContext) -> Dict[str, Any]:
        """
        Main agent execution logic.

        Args:
            context: Per-line context (read and modify)

        Returns:
            Dict containing:
                - decision: Agent's decision/output
                - confidence: Confidence score (0.0-1.0)
                - reasoning: Human-readable explanation
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return agent name for logging and the execution trail."""
        pass

    async def run(self, context: LineContext) -> Dict[str, Any]:
        """
        Wrapper around execute() that handles logging, timing, and errors.

        This method is called by the analyzer, not execute() directly.
        """
        agent_name = self.get_name()
        log = LogAdapter(self.logger, {"line_index": context.line_index, "stage": agent_name})
        start_time = datetime.now()

        try:
            result = await self.execute(context)

            duration = (datetime.now() - start_time).total_seconds()
            self._execution_count += 1
            self._total_duration += duration

            context.log_agent_execution(
                agent_name=agent_name,
                decision={**result, "duration_seconds": duration}
            )
            log.debug(
                f"{agent_name} completed in {duration:.3f}s "
                f"(decision: {result.get('decision')})"
            )
            return result

        except Exception as e:
            duration = (datetime.now() - start_time).total_seconds()
            self._failure_count += 1

            log.error(f"{agent_name} failed: {str(e)}", exc_info=True)
            context.log_agent_execution(
                agent_name=agent_name,
                decision={"error": str(e), "duration_seconds": duration}
            )
            context.add_warning(f"{agent_name} failed: {str(e)}")

            return {
                "decision": "error",
                "confidence": 0.0,
                "reasoning": f"Agent execution failed: {str(e)}",
                "error": str(e)
            }

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get agent performance metrics.

        Returns:
            Dict with execution count, failures, total time, average time
        """
        avg_duration = (
            self._total_duration / self._execution_count
            if self._execution_count > 0
            else 0.0
        )

        return {
            "agent_name": self.get_name(),
            "execution_count": self._execution_count,
            "failure_count": self._failure_count,
            "total_duration_seconds": self._total_duration,
            "average_duration_seconds": avg_duration,
        }
