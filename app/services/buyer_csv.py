"""
Buyer CSV import/export.

Header: email,name,product_title,access_type,amount,ref_id,purchased_at

Import never classifies product titles: a blank access_type means basic, and an
access_type outside the closed set rejects the row. Rows are numbered the way a
spreadsheet shows them, header = row 1, blank lines skipped.
"""
import csv
import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.exceptions import ValidationError
from app.models.buyer import AccessType, Buyer
from app.services.buyers import validate_email

CSV_HEADERS = ["email", "name", "product_title", "access_type", "amount", "ref_id", "purchased_at"]
REQUIRED_COLUMNS = ("email", "name", "product_title")
ACCESS_TYPE_VALUES = [t.value for t in AccessType]


@dataclass
class BuyerRow:
    email: str
    name: str
    product_title: str
    access_type: AccessType = AccessType.BASIC
    amount: Optional[str] = None
    ref_id: Optional[str] = None
    purchased_at: Optional[datetime] = None


@dataclass
class RowError:
    row: int
    error: str


@dataclass
class CSVParseResult:
    success: List[BuyerRow] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)


def _format_timestamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def buyers_to_csv(buyers: Iterable[Buyer]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for buyer in buyers:
        access_type = buyer.access_type.value if isinstance(buyer.access_type, AccessType) else buyer.access_type
        writer.writerow([
            buyer.email,
            buyer.name,
            buyer.product_title,
            access_type,
            buyer.amount or "",
            buyer.ref_id or "",
            _format_timestamp(buyer.purchased_at),
        ])
    return output.getvalue()


def _cell(values: List[str], index: int) -> str:
    if index == -1 or index >= len(values):
        return ""
    return values[index].strip()


def _parse_purchased_at(value: str) -> Optional[datetime]:
    """ISO-8601; a timestamp without an offset is taken as UTC"""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_buyers_csv(content: str) -> CSVParseResult:
    """Parse an uploaded CSV into valid rows and row-numbered errors"""
    rows = [row for row in csv.reader(io.StringIO(content)) if any(cell.strip() for cell in row)]

    if len(rows) < 2:
        return CSVParseResult(errors=[RowError(row=0, error="CSV file is empty or has no data rows")])

    headers = [h.strip().lower() for h in rows[0]]
    if any(column not in headers for column in REQUIRED_COLUMNS):
        return CSVParseResult(
            errors=[RowError(row=0, error=f"Required columns: {', '.join(REQUIRED_COLUMNS)}")]
        )

    idx = {name: (headers.index(name) if name in headers else -1) for name in CSV_HEADERS}
    result = CSVParseResult()

    for row_number, values in enumerate(rows[1:], start=2):
        email = _cell(values, idx["email"])
        name = _cell(values, idx["name"])
        product_title = _cell(values, idx["product_title"])
        raw_access = _cell(values, idx["access_type"]).lower() or AccessType.BASIC.value

        if not email or not name or not product_title:
            result.errors.append(RowError(row=row_number, error="email, name and product_title are required"))
            continue

        try:
            email = validate_email(email)
        except ValidationError:
            result.errors.append(RowError(row=row_number, error=f"Invalid email format: {email}"))
            continue

        if raw_access not in ACCESS_TYPE_VALUES:
            result.errors.append(RowError(
                row=row_number,
                error=f"Invalid access_type: {raw_access}. Must be one of: {', '.join(ACCESS_TYPE_VALUES)}",
            ))
            continue

        try:
            purchased_at = _parse_purchased_at(_cell(values, idx["purchased_at"]))
        except ValueError:
            result.errors.append(RowError(row=row_number, error="Invalid purchased_at timestamp"))
            continue

        result.success.append(BuyerRow(
            email=email,
            name=name,
            product_title=product_title,
            access_type=AccessType(raw_access),
            amount=_cell(values, idx["amount"]) or None,
            ref_id=_cell(values, idx["ref_id"]) or None,
            purchased_at=purchased_at,
        ))

    return result
