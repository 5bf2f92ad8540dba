"""Presence and format checks over extracted invoice fields."""

import math
import re

from docflow.documents.models import InvoiceFields

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_invoice_fields(fields: InvoiceFields) -> list[str]:
    """Return every validation failure message, in field order.

    An empty list means the fields are valid.
    """
    errors: list[str] = []
    if not fields.invoice_number:
        errors.append("Invoice Number is missing or empty.")
    if not fields.customer_name:
        errors.append("Customer Name is missing or empty.")
    if (
        fields.total_amount is None
        or math.isnan(fields.total_amount)
        or fields.total_amount <= 0
    ):
        errors.append("Total Amount is missing, invalid, or zero/negative.")
    if not fields.currency:
        errors.append("Currency is missing or empty.")
    if not fields.issue_date or not _ISO_DATE.match(fields.issue_date):
        errors.append("Issue Date is missing or invalid (expected YYYY-MM-DD).")
    return errors
