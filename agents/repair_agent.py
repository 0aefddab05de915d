"""Repair Scan Agent.

Runs the lazy repair check over every market the store still shows as
active, e.g. from cron or by hand after an outage. Checks run
concurrently through ``RepairService.verify_many``; only resolutions
are written back.

Not a scheduler: each invocation is one finite pass.
"""

from __future__ import annotations

from typing import Any, Dict, List

from .base import AgentResult, AgentStatus, BaseAgent
from db.models import Market
from reconcile.models import RESOLVED


class RepairAgent(BaseAgent):
    def __init__(self, config: Any = None) -> None:
        super().__init__(name="repair", config=config)

    def execute(self, context: Dict[str, Any]) -> AgentResult:
        queries = context["queries"]
        service = context["repair_service"]
        platform = context.get("platform")

        markets = [Market.from_row(row) for row in queries.get_active_markets(platform)]
        outcomes = service.verify_many(markets)

        repaired: List[str] = []
        already_resolved = 0
        live = 0
        errors: List[str] = []
        for market_id, outcome in outcomes.items():
            if outcome.error is not None:
                errors.append(f"{market_id}: {outcome.error}")
            elif outcome.status == RESOLVED and outcome.updated:
                repaired.append(market_id)
            elif outcome.status == RESOLVED:
                already_resolved += 1
            else:
                live += 1

        error_summary = f" ({len(errors)} errors)" if errors else ""
        return AgentResult(
            agent_name=self.name,
            status=AgentStatus.SUCCESS,
            items_processed=len(outcomes),
            summary=(
                f"Checked {len(outcomes)} markets, repaired {len(repaired)}"
                f"{error_summary}."
            ),
            data={
                "checked": len(outcomes),
                "repaired": repaired,
                "already_resolved": already_resolved,
                "still_active": live,
                "errors": errors[:10],
            },
        )
