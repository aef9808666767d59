from uuid import UUID

from sqlalchemy.orm import Session

from recurring.models.subscribable import Subscribable


class SubscribableRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, subscribable_id: UUID) -> Subscribable | None:
        return self.db.query(Subscribable).filter(Subscribable.id == subscribable_id).first()

    def get_by_ids(self, subscribable_ids: list[UUID]) -> dict[UUID, Subscribable]:
        if not subscribable_ids:
            return {}
        rows = self.db.query(Subscribable).filter(Subscribable.id.in_(subscribable_ids)).all()
        return {row.id: row for row in rows}  # type: ignore[misc]
