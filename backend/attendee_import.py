"""Bulk attendee import: turn uploaded spreadsheets, PDFs or manual rows into attendees.

Parsing produces plain records (``{"row": n, "name": ..., "email": ...}``); validation
decides which records become attendees; persistence inserts the accepted rows in
a single commit.
"""
import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pypdfium2 as pdfium
from email_validator import EmailNotValidError, validate_email
from fastapi import HTTPException, status
from openpyxl import Workbook, load_workbook
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import generate_password, get_password_hash
from identifier_rules import normalize_identifier
from models import Attendee, AttendeeStatus

logger = logging.getLogger(__name__)

IMPORT_FIELDS = ("name", "email", "company", "position", "phone")
TEMPLATE_HEADERS = ["Name", "Email", "Company", "Position", "Phone"]
SUPPORTED_EXTENSIONS = {".csv", ".xlsx", ".pdf"}
MAX_REPORTED_ERRORS = 50

FIELD_ALIASES: Dict[str, Set[str]] = {
    "name": {"name", "full name", "attendee name", "participant name", "attendee"},
    "email": {"email", "e mail", "email address", "e mail address", "mail"},
    "company": {"company", "company name", "organization", "organisation", "org"},
    "position": {"position", "title", "job title", "role", "designation"},
    "phone": {"phone", "phone number", "mobile", "mobile number", "contact", "contact number"},
}

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PDF_FIELD_SPLIT = re.compile(r"\s*(?:,|\t|\||;)\s*|\s{2,}")


@dataclass
class ImportOutcome:
    attendees: List[Attendee] = field(default_factory=list)
    credentials: List[Dict[str, str]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    skipped: int = 0


def norm_header(value) -> str:
    return " ".join(str(value or "").strip().lower().replace("_", " ").replace("-", " ").split())


def map_headers(headers: Sequence) -> Dict[int, str]:
    """Column index -> import field, first matching column wins."""
    mapping: Dict[int, str] = {}
    taken: Set[str] = set()
    for idx, header in enumerate(headers):
        normalized = norm_header(header)
        for field_name, aliases in FIELD_ALIASES.items():
            if normalized in aliases and field_name not in taken:
                mapping[idx] = field_name
                taken.add(field_name)
                break
    return mapping


def clean_cell(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def records_from_table(headers: Sequence, rows: Iterable[Sequence], first_row: int = 2) -> List[Dict]:
    mapping = map_headers(headers)
    if "name" not in mapping.values() or "email" not in mapping.values():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must have Name and Email columns",
        )

    records = []
    for row_idx, row in enumerate(rows, start=first_row):
        record = {"row": row_idx}
        for col_idx, field_name in mapping.items():
            record[field_name] = clean_cell(row[col_idx]) if col_idx < len(row) else None
        records.append(record)
    return records


def read_xlsx(content: bytes) -> List[Dict]:
    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Excel file") from exc
    try:
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    if not rows:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Excel header row is empty")
    return records_from_table(rows[0], rows[1:])


def _decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def read_csv(content: bytes) -> List[Dict]:
    reader = csv.reader(io.StringIO(_decode_text(content)))
    rows = [row for row in reader]
    if not rows:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CSV header row is empty")
    return records_from_table(rows[0], rows[1:])


def extract_pdf_lines(content: bytes) -> List[str]:
    try:
        doc = pdfium.PdfDocument(content)
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid PDF file") from exc

    lines: List[str] = []
    try:
        for idx in range(len(doc)):
            page = doc[idx]
            textpage = page.get_textpage()
            try:
                text = textpage.get_text_range()
            finally:
                textpage.close()
                page.close()
            lines.extend(line.strip() for line in text.splitlines() if line.strip())
    finally:
        doc.close()
    return lines


def split_pdf_fields(line: str) -> List[str]:
    return [part.strip() for part in PDF_FIELD_SPLIT.split(line.strip())]


def records_from_lines(lines: Sequence[str]) -> List[Dict]:
    """Rows from free text: a header line drives the columns, else one attendee per e-mail."""
    if not lines:
        return []

    header_fields = split_pdf_fields(lines[0])
    mapping = map_headers(header_fields)
    if "name" in mapping.values() and "email" in mapping.values():
        return records_from_table(header_fields, [split_pdf_fields(line) for line in lines[1:]])

    records = []
    for line_no, line in enumerate(lines, start=1):
        match = EMAIL_PATTERN.search(line)
        if not match:
            continue
        name = line[:match.start()].strip(" \t,;|-:")
        extra = [part for part in split_pdf_fields(line[match.end():]) if part]
        record = {"row": line_no, "name": name or None, "email": match.group(0)}
        for field_name, value in zip(("company", "position", "phone"), extra):
            record[field_name] = value
        records.append(record)
    return records


def read_pdf(content: bytes) -> List[Dict]:
    return records_from_lines(extract_pdf_lines(content))


def parse_upload(filename: Optional[str], content: bytes) -> List[Dict]:
    extension = Path(filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only .csv, .xlsx and .pdf files are supported",
        )
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if extension == ".xlsx":
        return read_xlsx(content)
    if extension == ".pdf":
        return read_pdf(content)
    return read_csv(content)


def _is_blank(record: Dict) -> bool:
    return not any(record.get(field_name) for field_name in IMPORT_FIELDS)


def validate_records(
    records: Iterable[Dict],
    existing_emails: Iterable[str] = (),
    skip_duplicates: bool = True,
) -> Tuple[List[Dict], List[str], int]:
    """Split records into accepted rows and error messages.

    Returns ``(accepted, errors, skipped)``; ``errors`` is capped but ``skipped``
    counts every rejected row.
    """
    accepted: List[Dict] = []
    errors: List[str] = []
    skipped = 0
    seen = {normalize_identifier(email) for email in existing_emails} if skip_duplicates else set()

    def _reject(message: str) -> None:
        nonlocal skipped
        skipped += 1
        if len(errors) < MAX_REPORTED_ERRORS:
            errors.append(message)

    for record in records:
        if _is_blank(record):
            continue
        row_label = f"Row {record.get('row', '?')}"
        name = clean_cell(record.get("name"))
        email = clean_cell(record.get("email"))
        if not name:
            _reject(f"{row_label}: missing name")
            continue
        if not email:
            _reject(f"{row_label}: missing email")
            continue
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            _reject(f"{row_label}: invalid email {email}")
            continue

        key = normalize_identifier(email)
        if skip_duplicates and key in seen:
            _reject(f"{row_label}: duplicate email {email}")
            continue
        seen.add(key)

        accepted.append({
            "row": record.get("row"),
            "name": name,
            "email": email,
            "company": clean_cell(record.get("company")),
            "position": clean_cell(record.get("position")),
            "phone": clean_cell(record.get("phone")),
        })
    return accepted, errors, skipped


def import_attendees(
    db: Session,
    event_id: int,
    records: Iterable[Dict],
    generate_credentials: bool = False,
    skip_duplicates: bool = True,
) -> ImportOutcome:
    existing = [email for (email,) in db.query(Attendee.email).filter(Attendee.event_id == event_id).all()]
    accepted, errors, skipped = validate_records(records, existing, skip_duplicates=skip_duplicates)
    outcome = ImportOutcome(errors=errors, skipped=skipped)

    passwords: List[Optional[str]] = []
    for row in accepted:
        attendee = Attendee(
            event_id=event_id,
            name=row["name"],
            email=row["email"],
            company=row["company"],
            position=row["position"],
            phone=row["phone"],
            status=AttendeeStatus.REGISTERED,
            mentor_id=None,
        )
        password = None
        if generate_credentials:
            password = generate_password()
            attendee.username = row["email"]
            attendee.hashed_password = get_password_hash(password)
        db.add(attendee)
        outcome.attendees.append(attendee)
        passwords.append(password)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Attendee import for event %s rolled back", event_id)
        raise

    for attendee, password in zip(outcome.attendees, passwords):
        db.refresh(attendee)
        if password:
            outcome.credentials.append({
                "attendee_id": attendee.id,
                "name": attendee.name,
                "email": attendee.email,
                "username": attendee.username,
                "password": password,
            })

    logger.info(
        "Imported %d attendees into event %s (%d skipped)",
        len(outcome.attendees), event_id, outcome.skipped,
    )
    return outcome


def build_import_template() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Attendees"
    ws.append(TEMPLATE_HEADERS)
    ws.append(["Jane Doe", "jane@example.com", "Acme Corp", "Engineer", "5550100"])
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
