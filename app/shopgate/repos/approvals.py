from datetime import datetime

from sqlalchemy import func, select, update

from app.shopgate.db.models import ApprovalRequest


class ApprovalRequestRepository:
    def __init__(self, db):
        self.db = db

    def add(self, approval: ApprovalRequest) -> ApprovalRequest:
        self.db.add(approval)
        self.db.flush()
        return approval

    def get_in_shop(self, request_id, shop_id, *, fresh: bool = False):
        stmt = select(ApprovalRequest).where(ApprovalRequest.id == request_id, ApprovalRequest.shop_id == shop_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self.db.execute(stmt).scalars().first()

    def transition_from_pending(
        self,
        request_id,
        *,
        status: str,
        reviewed_by,
        decided_at: datetime,
        review_note: str | None = None,
        failure_reason: str | None = None,
    ) -> bool:
        """Compare-and-swap on PENDING; False means another decision won."""
        stmt = (
            update(ApprovalRequest)
            .where(ApprovalRequest.id == request_id, ApprovalRequest.status == "PENDING")
            .values(
                status=status,
                reviewed_by=reviewed_by,
                decided_at=decided_at,
                review_note=review_note,
                failure_reason=failure_reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def mark_applied(self, request_id, *, applied_record_id: str | None) -> bool:
        stmt = (
            update(ApprovalRequest)
            .where(ApprovalRequest.id == request_id, ApprovalRequest.status == "APPROVED")
            .values(status="APPLIED", applied_record_id=applied_record_id)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def list_for_shop(
        self,
        shop_id,
        *,
        status: str | None = None,
        requested_by=None,
        limit: int | None = None,
        offset: int | None = None,
    ):
        stmt = select(ApprovalRequest).where(ApprovalRequest.shop_id == shop_id)
        count_stmt = select(func.count()).select_from(ApprovalRequest).where(ApprovalRequest.shop_id == shop_id)

        if status:
            stmt = stmt.where(ApprovalRequest.status == status)
            count_stmt = count_stmt.where(ApprovalRequest.status == status)

        if requested_by is not None:
            stmt = stmt.where(ApprovalRequest.requested_by == requested_by)
            count_stmt = count_stmt.where(ApprovalRequest.requested_by == requested_by)

        stmt = stmt.order_by(ApprovalRequest.created_at.desc(), ApprovalRequest.id.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        rows = self.db.execute(stmt).scalars().all()
        total = self.db.execute(count_stmt).scalar_one()
        return rows, total
