from uuid import UUID

from sqlalchemy.orm import Session

from recurring.models.line_item import LineItem


class LineItemRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_subscription_id(self, subscription_id: UUID) -> list[LineItem]:
        """Line items of a subscription in insertion order."""
        return (
            self.db.query(LineItem)
            .filter(LineItem.subscription_id == subscription_id)
            .order_by(LineItem.position, LineItem.created_at)
            .all()
        )

    def add(self, line_item: LineItem) -> LineItem:
        self.db.add(line_item)
        return line_item

    def delete(self, line_item: LineItem) -> None:
        self.db.delete(line_item)

