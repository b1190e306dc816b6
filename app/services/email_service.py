"""Email service for transactional emails (Resend).

Emails are queued as background tasks after the database work has committed;
a failure here is logged and never undoes a payment or assignment.
"""

import logging
from datetime import date
from decimal import Decimal

from app.config import settings

logger = logging.getLogger(__name__)


def _should_skip_email(to_email: str) -> bool:
    """Skip sending in test env or to test domains (Resend sandbox restricts recipients)."""
    if settings.ENVIRONMENT == "test":
        return True
    test_domains = ("@test.com", "@test.example.com", "@resend.dev")
    return any(to_email.lower().endswith(d) for d in test_domains)


def _money(amount: Decimal) -> str:
    return f"{settings.CURRENCY_SYMBOL}{Decimal(amount):.2f}"


def _wrap(title: str, body: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="font-family: sans-serif; line-height: 1.6; color: #333; max-width: 560px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #16a34a;">{title}</h2>
  {body}
  <hr style="border: none; border-top: 1px solid #e2e8f0; margin: 24px 0;">
  <p style="color: #94a3b8; font-size: 12px;">ShortStacks: financial literacy for the classroom</p>
</body>
</html>
"""


def _send(to_email: str, subject: str, html: str, kind: str) -> bool:
    """
    Deliver one email. Returns True if sent (or deliberately skipped for a test
    recipient), False if skipped for missing configuration or if delivery failed.
    """
    if not settings.RESEND_API_KEY:
        logger.info("Email skipped (RESEND_API_KEY not set): %s to %s", kind, to_email)
        return False
    if _should_skip_email(to_email):
        logger.info("Email skipped (test env or test domain): %s to %s", kind, to_email)
        return True

    try:
        import resend

        resend.api_key = settings.RESEND_API_KEY
        resend.Emails.send(
            {
                "from": settings.EMAIL_FROM,
                "to": [to_email],
                "subject": subject,
                "html": html,
            }
        )
        logger.info("%s email sent to %s", kind, to_email)
        return True
    except Exception as e:
        logger.exception("Failed to send %s email to %s: %s", kind, to_email, e)
        return False


def send_payment_receipt(
    to_email: str,
    first_name: str,
    bill_title: str,
    amount: Decimal,
    remaining: Decimal,
) -> bool:
    """Receipt for a bill payment made from a student's account."""
    status_line = (
        "This bill is now fully paid."
        if Decimal(remaining) <= 0
        else f"Remaining on this bill: <strong>{_money(remaining)}</strong>."
    )
    body = f"""
  <p>Hi {first_name},</p>
  <p>We received your payment of <strong>{_money(amount)}</strong> for <strong>{bill_title}</strong>.</p>
  <p>{status_line}</p>
"""
    return _send(
        to_email,
        f"Payment received: {bill_title}",
        _wrap("Payment received", body),
        "payment receipt",
    )


def send_bill_assigned(
    to_email: str,
    first_name: str,
    bill_title: str,
    amount: Decimal,
    due_date: date,
) -> bool:
    """Notice that a teacher assigned a new bill to the student."""
    body = f"""
  <p>Hi {first_name},</p>
  <p>A new bill, <strong>{bill_title}</strong>, has been added to your account.</p>
  <p>Amount: <strong>{_money(amount)}</strong><br>Due: <strong>{due_date.strftime("%B %d, %Y")}</strong></p>
"""
    return _send(
        to_email,
        f"New bill: {bill_title}",
        _wrap("You have a new bill", body),
        "bill assigned",
    )
