from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from recurring.models.installment import (
    Installment,
    InstallmentDetail,
    InstallmentLineItem,
    InstallmentState,
)


class InstallmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, installment_id: UUID) -> Installment | None:
        return self.db.query(Installment).filter(Installment.id == installment_id).first()

    def get_by_subscription_id(self, subscription_id: UUID) -> list[Installment]:
        """Installments of a subscription, oldest first."""
        return (
            self.db.query(Installment)
            .filter(Installment.subscription_id == subscription_id)
            .order_by(Installment.created_at, Installment.id)
            .all()
        )

    def latest_for_subscription(self, subscription_id: UUID) -> Installment | None:
        return (
            self.db.query(Installment)
            .filter(Installment.subscription_id == subscription_id)
            .order_by(Installment.created_at.desc(), Installment.id.desc())
            .first()
        )

    def get_line_items(self, installment_id: UUID) -> list[InstallmentLineItem]:
        return (
            self.db.query(InstallmentLineItem)
            .filter(InstallmentLineItem.installment_id == installment_id)
            .order_by(InstallmentLineItem.created_at)
            .all()
        )

    def get_details(self, installment_id: UUID) -> list[InstallmentDetail]:
        return (
            self.db.query(InstallmentDetail)
            .filter(InstallmentDetail.installment_id == installment_id)
            .order_by(InstallmentDetail.created_at)
            .all()
        )

    def count_for_line_item(self, subscription_line_item_id: UUID) -> int:
        """How many installments have included the given subscription line item."""
        return (
            self.db.query(func.count(InstallmentLineItem.id))
            .filter(InstallmentLineItem.subscription_line_item_id == subscription_line_item_id)
            .scalar()
            or 0
        )

    def add(
        self, installment: Installment, line_items: list[InstallmentLineItem]
    ) -> Installment:
        """Stage an installment and its line items without committing."""
        self.db.add(installment)
        self.db.flush()
        for line_item in line_items:
            line_item.installment_id = installment.id
            self.db.add(line_item)
        return installment

    def add_detail(
        self,
        installment: Installment,
        success: bool,
        message: str | None = None,
        order_reference: str | None = None,
    ) -> InstallmentDetail:
        """Append an attempt detail and move the installment to its outcome state."""
        detail = InstallmentDetail(
            installment_id=installment.id,
            success=success,
            message=message,
            order_reference=order_reference,
        )
        self.db.add(detail)
        installment.state = (  # type: ignore[assignment]
            InstallmentState.SUCCESS.value if success else InstallmentState.FAILED.value
        )
        return detail
