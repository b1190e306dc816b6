"""Domain 4: Classroom storefront"""

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, Numeric, String, Table, Text, UniqueConstraint, Uuid

from app.models.base import BaseModel, CreatorMixin
from app.models.enums import PurchaseStatus


class StoreItem(BaseModel, CreatorMixin):
    """Item a teacher offers for virtual currency in one or more classes."""
    __tablename__ = "store_items"

    name = Column(String(255), nullable=False)
    emoji = Column(String(16), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, default=0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<StoreItem {self.name} {self.price}>"


class StudentPurchase(BaseModel):
    """Cumulative purchases of one item by one student."""
    __tablename__ = "student_purchases"
    __table_args__ = (
        UniqueConstraint("item_id", "student_id", name="uq_student_purchases_item_student"),
    )

    item_id = Column(Uuid(as_uuid=True), ForeignKey("store_items.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(PurchaseStatus, name="purchase_status"), default=PurchaseStatus.PAID, nullable=False)

    def __repr__(self) -> str:
        return f"<StudentPurchase {self.item_id} x{self.quantity}>"


# Association table for StoreItem <-> Class
store_item_classes = Table(
    "store_item_classes",
    BaseModel.metadata,
    Column("item_id", Uuid(as_uuid=True), ForeignKey("store_items.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)
