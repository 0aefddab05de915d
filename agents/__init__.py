from .base import BaseAgent, AgentResult, AgentStatus
from .repair_agent import RepairAgent

__all__ = ["BaseAgent", "AgentResult", "AgentStatus", "RepairAgent"]
