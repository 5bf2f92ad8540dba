"""Regex-based extraction of invoice fields from recognized text."""

import re

from docflow.documents.models import InvoiceFields

_INVOICE_NUMBER = re.compile(r"Invoice Number:\s*(\S+)", re.IGNORECASE)
_CUSTOMER = re.compile(r"Customer:[ \t]*(.+)", re.IGNORECASE)
_TOTAL = re.compile(
    r"\bTotal(?:\s+Amount)?:\s*(\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"
    r"[ \t]*([A-Z]{3}\b)?",
    re.IGNORECASE,
)
_CURRENCY = re.compile(r"Currency:\s*([A-Z]{3})", re.IGNORECASE)
_ISSUE_DATE = re.compile(r"Date:\s*(\d{4}-\d{2}-\d{2})")


def extract_invoice_fields(text: str) -> InvoiceFields:
    """Extract whatever invoice fields the text contains.

    Missing labels leave the corresponding field as None; deciding whether
    that is acceptable is the validator's job.
    """
    invoice_number = _first_group(_INVOICE_NUMBER, text)
    customer_name = _first_group(_CUSTOMER, text)

    total_amount: float | None = None
    currency: str | None = None
    total_match = _TOTAL.search(text)
    if total_match:
        total_amount = _parse_amount(total_match.group(1))
        if total_match.group(2):
            currency = total_match.group(2).upper()
    if currency is None:
        separate_currency = _first_group(_CURRENCY, text)
        currency = separate_currency.upper() if separate_currency else None

    return InvoiceFields(
        invoice_number=invoice_number,
        customer_name=customer_name,
        total_amount=total_amount,
        currency=currency,
        issue_date=_first_group(_ISSUE_DATE, text),
    )


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def _parse_amount(raw: str) -> float:
    # Thousands separators are commas; "1,234.56" -> 1234.56
    return float(raw.replace(",", ""))
