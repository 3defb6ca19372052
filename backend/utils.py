import csv
import io
from typing import Any, Iterable, List, Optional, Sequence, Type, TypeVar

from fastapi import HTTPException, status
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from models import AdminLog, User

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ModelT = TypeVar("ModelT")


def log_admin_action(db: Session, user: Optional[User], action: str, method: Optional[str] = None, path: Optional[str] = None, meta: Optional[dict] = None):
    db.add(AdminLog(
        user_id=user.id if user else None,
        user_email=user.email if user else "",
        action=action,
        method=method,
        path=path,
        meta=meta
    ))
    db.commit()


def get_or_404(db: Session, model: Type[ModelT], row_id: int, label: str) -> ModelT:
    row = db.query(model).filter(model.id == row_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return row


def build_xlsx_bytes(headers: Sequence[str], rows: Iterable[Sequence[Any]], title: Optional[str] = None) -> bytes:
    wb = Workbook()
    ws = wb.active
    if title:
        ws.title = title[:31]
    ws.append(list(headers))
    for row in rows:
        ws.append(list(row))
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def table_download(
    headers: Sequence[str],
    rows: List[Sequence[Any]],
    filename: str,
    format: str = "csv",
    title: Optional[str] = None,
) -> StreamingResponse:
    if format == "xlsx":
        content = build_xlsx_bytes(headers, rows, title=title)
        return StreamingResponse(
            io.BytesIO(content),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"}
        )
    if format != "csv":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Format must be csv or xlsx")

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}.csv"}
    )
