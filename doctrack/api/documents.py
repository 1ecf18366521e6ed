import posixpath
from datetime import datetime
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from doctrack.api.deps import get_current_user, get_db
from doctrack.models.tenancy import User
from doctrack.schemas.common import ListResponse
from doctrack.schemas.documents import (
    CommentCreate,
    DerivationRead,
    DeriveRequest,
    DocumentCreate,
    DocumentRead,
    HistoryEntryRead,
    PreviewURLResponse,
    UploadedFile,
)
from doctrack.services.derivation import derivation
from doctrack.services.documents import documents
from doctrack.services.history import history

router = APIRouter(prefix="/documents", tags=["documents"])


def _ascii_name(value: str) -> str:
    return "".join(c for c in value if 32 <= ord(c) < 127 and c not in "\"\\")


def content_disposition(file_name: str) -> str:
    """RFC 6266 attachment header with an ASCII fallback and a UTF-8 name."""
    stem, ext = posixpath.splitext(file_name)
    fallback = (_ascii_name(stem).strip() or "document") + _ascii_name(ext)
    return (
        f'attachment; filename="{fallback}"; '
        f"filename*=UTF-8''{quote(file_name, safe='')}"
    )


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def create_document(
    title: str = Form(...),
    target_area_id: UUID = Form(...),
    description: str | None = Form(default=None),
    target_user_id: UUID | None = Form(default=None),
    priority: str = Form(default="normal"),
    due_date: datetime | None = Form(default=None),
    file: UploadFile = File(...),
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        payload = DocumentCreate(
            title=title,
            description=description,
            target_area_id=target_area_id,
            target_user_id=target_user_id,
            priority=priority,
            due_date=due_date,
        )
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))
    upload = UploadedFile(
        file_name=file.filename or "upload",
        content_type=file.content_type,
        content=await file.read(),
    )
    return documents.create(db, actor, payload, upload)


@router.get("", response_model=ListResponse[DocumentRead])
def list_documents(
    box: str = Query(default="all", pattern="^(all|inbox|sent)$"),
    status_filter: str | None = Query(default=None, alias="status"),
    priority: str | None = None,
    area_id: str | None = None,
    search: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return documents.list_response(
        db,
        actor,
        box,
        status_filter,
        priority,
        area_id,
        search,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return documents.get(db, actor.company_id, document_id)


@router.post("/{document_id}/derive", response_model=DerivationRead)
def derive_document(
    document_id: str,
    payload: DeriveRequest,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return derivation.derive(db, actor, document_id, payload)


@router.get("/{document_id}/history", response_model=ListResponse[HistoryEntryRead])
def list_history(
    document_id: str,
    action: str | None = None,
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return history.list_response(
        db, actor.company_id, document_id, action, order_dir, limit, offset
    )


@router.post(
    "/{document_id}/views",
    response_model=HistoryEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def record_view(
    document_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return documents.record_view(db, actor, document_id)


@router.get("/{document_id}/download")
def download_document(
    document_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    def build(document, content: bytes) -> Response:
        return Response(
            content=content,
            media_type=document.mime_type,
            headers={"Content-Disposition": content_disposition(document.file_name)},
        )

    return documents.download(db, actor, document_id, build)


@router.get("/{document_id}/preview-url", response_model=PreviewURLResponse)
def preview_url(
    document_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return documents.preview_url(db, actor, document_id)


@router.post("/{document_id}/archive", response_model=DocumentRead)
def archive_document(
    document_id: str,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return documents.archive(db, actor, document_id)


@router.post(
    "/{document_id}/comments",
    response_model=HistoryEntryRead,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    document_id: str,
    payload: CommentCreate,
    actor: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return documents.add_comment(db, actor, document_id, payload.comment)
