"""Agent lifecycle: a finite unit of batch work with a recorded outcome.

Subclasses implement ``execute(context)``. ``run(context)`` wraps it,
stamps start/finish times, converts an escaping exception into an
ERROR result, and writes one ``agent_logs`` row through
``context["queries"]`` when a store is present.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from db.models import AgentLog

logger = logging.getLogger(__name__)


class AgentStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class AgentResult:
    agent_name: str
    status: AgentStatus = AgentStatus.IDLE
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: float = 0.0
    data: Dict[str, Any] = field(default_factory=dict)
    summary: str = ""
    error: Optional[str] = None
    items_processed: int = 0

    def stamp(self, started: datetime, completed: datetime) -> None:
        self.started_at = started.isoformat()
        self.completed_at = completed.isoformat()
        self.duration_seconds = (completed - started).total_seconds()

    def to_log(self) -> AgentLog:
        return AgentLog(
            agent_name=self.agent_name,
            status=self.status.value,
            started_at=self.started_at,
            completed_at=self.completed_at,
            duration_seconds=self.duration_seconds,
            items_processed=self.items_processed,
            summary=self.summary,
            error=self.error,
        )


class BaseAgent(ABC):
    def __init__(self, name: str, config: Any = None) -> None:
        self.name = name
        self.config = config
        self.status = AgentStatus.IDLE
        self.last_result: Optional[AgentResult] = None

    @abstractmethod
    def execute(self, context: Dict[str, Any]) -> AgentResult:
        ...

    def run(self, context: Dict[str, Any]) -> AgentResult:
        self.status = AgentStatus.RUNNING
        started = datetime.now(timezone.utc)
        logger.info("Agent '%s' started", self.name)

        try:
            result = self.execute(context)
            result.status = AgentStatus.SUCCESS
        except Exception as exc:
            logger.exception("Agent '%s' failed", self.name)
            result = AgentResult(agent_name=self.name, status=AgentStatus.ERROR,
                                 error=str(exc))

        result.agent_name = self.name
        result.stamp(started, datetime.now(timezone.utc))
        self.status = result.status
        logger.info("Agent '%s' finished: %s in %.2fs",
                    self.name, result.status.value, result.duration_seconds)

        self._record(context, result)
        context[f"result_{self.name}"] = result
        self.last_result = result
        return result

    def _record(self, context: Dict[str, Any], result: AgentResult) -> None:
        queries = context.get("queries")
        if queries is None:
            return
        try:
            queries.insert_agent_log(result.to_log())
        except Exception:
            # A failed log row must not turn a finished scan into a failure.
            logger.warning("Could not record run of agent '%s'", self.name, exc_info=True)
