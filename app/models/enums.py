"""Centralized Enum Definitions"""

import enum


# Domain 1: Users & Authentication
class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    SUPER_ADMIN = "SUPER_ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


# Domain 2: Bills
class BillFrequency(str, enum.Enum):
    """Recurrence cadence of a bill"""
    ONCE = "ONCE"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class BillStatus(str, enum.Enum):
    """Display status derived from due date and per-student payments"""
    ACTIVE = "ACTIVE"
    DUE = "DUE"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    LATE = "LATE"
    CANCELLED = "CANCELLED"


# Domain 3: Banking
class AccountType(str, enum.Enum):
    """Student bank account types"""
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


class TransactionType(str, enum.Enum):
    """Ledger row types"""
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


# Domain 4: Storefront
class PurchaseStatus(str, enum.Enum):
    """Store purchase status"""
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
