"""Integration tests for monthly statement generation (storage upload patched out)."""

import io
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from app.models.enums import AccountType, TransactionType, UserRole
from app.schemas.banking import FundsRequest, TransferRequest
from app.services import storage_service
from app.services.banking_service import BankingService
from app.services.statement_service import (
    STATEMENT_SHEET_NAME,
    StatementService,
    signed_amount,
    statement_key,
)
from app.utils.time import get_utc_now
from tests.factories import make_class, make_user, open_accounts


@pytest.fixture
def uploads(monkeypatch):
    """Capture uploads in memory instead of calling R2."""
    stored = {}

    async def fake_upload(key, content, content_type=None):
        stored[key] = content
        return f"https://files.example.com/{key}"

    monkeypatch.setattr(storage_service, "upload", fake_upload)
    return stored


def test_statement_key_layout():
    assert statement_key("s1", "a1", 2025, 3) == "statements/s1/a1/2025/March_2025_statement.xlsx"


@pytest.mark.parametrize(
    "transaction_type,sign",
    [
        (TransactionType.DEPOSIT, 1),
        (TransactionType.TRANSFER_IN, 1),
        (TransactionType.WITHDRAWAL, -1),
        (TransactionType.TRANSFER_OUT, -1),
    ],
)
def test_signed_amount(transaction_type, sign):
    class Row:
        amount = Decimal("5.00")

    row = Row()
    row.transaction_type = transaction_type
    assert signed_amount(row) == sign * Decimal("5.00")


async def test_generates_one_statement_per_active_account(db_session, teacher, student, classroom, uploads):
    student_id, teacher_id = student.id, teacher.id
    idle = await make_user(db_session, UserRole.STUDENT)
    await make_class(db_session, teacher, [idle], name="Period 2")
    await BankingService.setup_accounts(db_session, idle.id)
    checking, savings = await open_accounts(db_session, student)
    checking_id, savings_id = checking.id, savings.id

    await BankingService.adjust_funds(
        db_session, teacher_id,
        FundsRequest(student_ids=[student_id], account_type=AccountType.CHECKING, amount=Decimal("50")),
        deposit=True,
    )
    await BankingService.transfer(
        db_session, student_id,
        TransferRequest(from_account_id=checking_id, to_account_id=savings_id, amount=Decimal("20")),
    )

    now = get_utc_now()
    summary = await StatementService.generate_monthly_statements(db_session, now.year, now.month)

    results = summary["results"]
    assert summary["period"]["year"] == now.year
    assert results["total"] == 4
    assert results["success"] == 2
    assert results["no_transactions"] == 2
    assert results["failed"] == 0
    assert len(uploads) == 2

    key = statement_key(student_id, checking_id, now.year, now.month)
    workbook = load_workbook(io.BytesIO(uploads[key]))
    sheet = workbook[STATEMENT_SHEET_NAME]
    rows = [row for row in sheet.iter_rows(values_only=True) if any(cell is not None for cell in row)]
    assert rows[-1][0] == "Closing balance"
    assert rows[-1][5] == pytest.approx(30.0)

    statements = await StatementService.list_statements(db_session, checking_id)
    assert len(statements) == 1
    assert statements[0].url.endswith(key)


async def test_regenerating_replaces_the_stored_statement(db_session, teacher, student, classroom, uploads):
    student_id = student.id
    checking, _ = await open_accounts(db_session, student)
    checking_id = checking.id
    await BankingService.adjust_funds(
        db_session, teacher.id,
        FundsRequest(student_ids=[student_id], account_type=AccountType.CHECKING, amount=Decimal("5")),
        deposit=True,
    )
    now = get_utc_now()

    await StatementService.generate_monthly_statements(db_session, now.year, now.month)
    await StatementService.generate_monthly_statements(db_session, now.year, now.month)

    assert len(await StatementService.list_statements(db_session, checking_id)) == 1


async def test_upload_failure_is_counted_and_run_continues(db_session, teacher, student, classroom, monkeypatch):
    student_id = student.id
    await open_accounts(db_session, student)
    await BankingService.adjust_funds(
        db_session, teacher.id,
        FundsRequest(student_ids=[student_id], account_type=AccountType.CHECKING, amount=Decimal("5")),
        deposit=True,
    )

    async def broken_upload(key, content, content_type=None):
        raise RuntimeError("Storage upload failed: boom")

    monkeypatch.setattr(storage_service, "upload", broken_upload)
    now = get_utc_now()

    summary = await StatementService.generate_monthly_statements(db_session, now.year, now.month)

    assert summary["results"]["failed"] == 1
    assert summary["results"]["no_transactions"] == 1
    failed = [d for d in summary["results"]["details"] if d["status"] == "failed"]
    assert "boom" in failed[0]["error"]
