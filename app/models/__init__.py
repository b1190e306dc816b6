"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, CreatorMixin, StatusMixin
from app.models.enums import *
from app.models.user import User
from app.models.academic import Class, class_enrollments
from app.models.billing import Bill, StudentBill, bill_classes, bill_excluded_students
from app.models.banking import BankAccount, Transaction, BankStatement
from app.models.storefront import StoreItem, StudentPurchase, store_item_classes


__all__ = [
    # Base classes
    "BaseModel",
    "CreatorMixin",
    "StatusMixin",

    # Enums
    "UserRole",
    "BillFrequency",
    "BillStatus",
    "AccountType",
    "TransactionType",
    "PurchaseStatus",

    # Users & classes
    "User",
    "Class",
    "class_enrollments",

    # Bills
    "Bill",
    "StudentBill",
    "bill_classes",
    "bill_excluded_students",

    # Banking
    "BankAccount",
    "Transaction",
    "BankStatement",

    # Storefront
    "StoreItem",
    "StudentPurchase",
    "store_item_classes",
]
