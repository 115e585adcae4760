"""
Opportunity service: deals, stage moves and pipeline reporting.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from dateutil.relativedelta import relativedelta

from shared.repository import ITableRepository, PageRequest, Sort, eq, gte

from modules.contacts.exceptions import ContactNotFoundError

from .exceptions import OpportunityNotFoundError
from .models import (
    STAGE_PROBABILITIES,
    CreateOpportunityRequest,
    OpportunityStage,
    OpportunityStatus,
    UpdateOpportunityRequest,
)


class OpportunityService:
    def __init__(
        self,
        opportunities: ITableRepository,
        contacts: ITableRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._opportunities = opportunities
        self._contacts = contacts
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _check_contact(self, tenant_id: str, contact_id: Optional[str]) -> None:
        if contact_id and await self._contacts.get(contact_id, [eq("user_id", tenant_id)]) is None:
            raise ContactNotFoundError(contact_id)

    async def list_opportunities(
        self,
        tenant_id: str,
        stage: Optional[OpportunityStage] = None,
        status: Optional[OpportunityStatus] = None,
        contact_id: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict[str, Any]:
        conditions = [eq("user_id", tenant_id)]
        if stage:
            conditions.append(eq("stage", stage.value))
        if status:
            conditions.append(eq("status", status.value))
        if contact_id:
            conditions.append(eq("contact_id", contact_id))
        result = await self._opportunities.find(
            conditions, sort=Sort("created_at"), page=PageRequest(page, limit)
        )
        return {
            "opportunities": result.rows,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": result.total_count,
                "total_pages": -(-result.total_count // limit),
            },
        }

    async def get(self, tenant_id: str, opportunity_id: str) -> dict[str, Any]:
        row = await self._opportunities.get(opportunity_id, [eq("user_id", tenant_id)])
        if row is None:
            raise OpportunityNotFoundError(opportunity_id)
        return row

    async def create(self, tenant_id: str, request: CreateOpportunityRequest) -> dict[str, Any]:
        await self._check_contact(tenant_id, request.contact_id)
        row = request.model_dump(mode="json")
        row["user_id"] = tenant_id
        row["description"] = (request.description or "").strip() or None
        row["notes"] = (request.notes or "").strip() or None
        rows = await self._opportunities.insert(row)
        return rows[0]

    async def update(
        self, tenant_id: str, opportunity_id: str, request: UpdateOpportunityRequest
    ) -> dict[str, Any]:
        patch = request.to_patch()
        if "contact_id" in patch:
            await self._check_contact(tenant_id, patch["contact_id"])
        if not patch:
            return await self.get(tenant_id, opportunity_id)
        row = await self._opportunities.update(opportunity_id, patch, [eq("user_id", tenant_id)])
        if row is None:
            raise OpportunityNotFoundError(opportunity_id)
        return row

    async def move_stage(
        self, tenant_id: str, opportunity_id: str, stage: OpportunityStage
    ) -> dict[str, Any]:
        """Move a deal. Closing stages also set status, probability and closed_at."""
        now = self._clock().isoformat()
        patch: dict[str, Any] = {"stage": stage.value, "stage_changed_at": now}
        if stage is OpportunityStage.CLOSED_WON:
            patch.update(status=OpportunityStatus.WON.value, probability=100, closed_at=now)
        elif stage is OpportunityStage.CLOSED_LOST:
            patch.update(status=OpportunityStatus.LOST.value, probability=0, closed_at=now)
        else:
            patch["probability"] = STAGE_PROBABILITIES[stage]

        row = await self._opportunities.update(opportunity_id, patch, [eq("user_id", tenant_id)])
        if row is None:
            raise OpportunityNotFoundError(opportunity_id)
        return row

    async def delete(self, tenant_id: str, opportunity_id: str) -> None:
        if not await self._opportunities.delete(opportunity_id, [eq("user_id", tenant_id)]):
            raise OpportunityNotFoundError(opportunity_id)

    async def pipeline(self, tenant_id: str) -> dict[str, Any]:
        page = await self._opportunities.find(
            [eq("user_id", tenant_id), eq("status", OpportunityStatus.ACTIVE.value)],
            sort=Sort("value"),
        )
        pipeline = {
            stage.value: [row for row in page.rows if row.get("stage") == stage.value]
            for stage in OpportunityStage
        }
        totals = {
            stage: {"count": len(rows), "value": sum(row.get("value") or 0 for row in rows)}
            for stage, rows in pipeline.items()
        }
        return {
            "pipeline": pipeline,
            "stage_totals": totals,
            "stages": [stage.value for stage in OpportunityStage],
        }

    async def stats(self, tenant_id: str) -> dict[str, Any]:
        rows = (
            await self._opportunities.find(
                [eq("user_id", tenant_id)], columns="stage,status,value,probability"
            )
        ).rows

        by_stage: dict[str, dict[str, float]] = {}
        for row in rows:
            bucket = by_stage.setdefault(row["stage"], {"count": 0, "value": 0})
            bucket["count"] += 1
            bucket["value"] += row.get("value") or 0
        by_status = Counter(row["status"] for row in rows)

        total_value = sum(row.get("value") or 0 for row in rows)
        weighted_value = sum(
            (row.get("value") or 0) * (row.get("probability") or 0) / 100
            for row in rows
            if row["status"] == OpportunityStatus.ACTIVE.value
        )
        won = by_status.get(OpportunityStatus.WON.value, 0)
        closed = won + by_status.get(OpportunityStatus.LOST.value, 0)
        win_rate = round(won / closed * 100, 2) if closed else 0

        since = (self._clock() - relativedelta(months=6)).isoformat()
        recent = await self._opportunities.find(
            [eq("user_id", tenant_id), gte("created_at", since)], columns="created_at,value,status"
        )
        monthly: dict[str, dict[str, float]] = {}
        for row in recent.rows:
            bucket = monthly.setdefault(str(row["created_at"])[:7], {"created": 0, "value": 0, "won": 0})
            bucket["created"] += 1
            bucket["value"] += row.get("value") or 0
            if row["status"] == OpportunityStatus.WON.value:
                bucket["won"] += 1

        return {
            "total": len(rows),
            "total_value": total_value,
            "weighted_value": weighted_value,
            "by_stage": by_stage,
            "by_status": dict(by_status),
            "win_rate": win_rate,
            "monthly_trend": dict(sorted(monthly.items())),
            "active_count": by_status.get(OpportunityStatus.ACTIVE.value, 0),
            "average_value": total_value / len(rows) if rows else 0,
        }
