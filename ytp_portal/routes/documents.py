import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_user, has_full_admin_access, require_client_access, require_role
from ..database import get_db
from ..models import Document, DocumentStatus, User, UserRole
from ..schemas import DocumentCreate, DocumentDeleteRequest, DocumentStatusUpdate
from ..utils.sanitization import sanitize_html
from ..utils.serialization import parse_json, to_millis
from .matters import get_matter_or_404

logger = logging.getLogger(__name__)
router = APIRouter(tags=["documents"])

VALID_STATUSES = [s.value for s in DocumentStatus]

# Timestamp stamped the first time a document reaches a status
STATUS_TIMESTAMPS = {
    DocumentStatus.SENT.value: "sent_at",
    DocumentStatus.VIEWED.value: "viewed_at",
    DocumentStatus.SIGNED.value: "signed_at",
}


def serialize_document(document: Document, include_content: bool = False) -> dict:
    data = {
        "id": document.id,
        "title": document.title,
        "description": document.description,
        "status": document.status,
        "matter_id": document.matter_id,
        "client_id": document.client_id,
        "file_path": document.file_path,
        "file_size": document.file_size,
        "mime_type": document.mime_type,
        "requires_notary": document.requires_notary,
        "notarization_status": document.notarization_status,
        "sent_at": to_millis(document.sent_at),
        "viewed_at": to_millis(document.viewed_at),
        "signed_at": to_millis(document.signed_at),
        "created_at": to_millis(document.created_at),
        "updated_at": to_millis(document.updated_at),
    }
    if include_content:
        data["content"] = document.content
        data["variable_values"] = parse_json(document.variable_values, {})
    return data


def can_delete_document(user: User, document: Document) -> bool:
    """
    ADMIN (or admin level 2+) may delete anything, including signed and
    completed documents. Everyone else is limited to drafts: lawyers and
    staff any draft, a client only their own.
    """
    if has_full_admin_access(user):
        return True
    if document.status != DocumentStatus.DRAFT.value:
        return False
    if user.role in {UserRole.LAWYER.value, UserRole.STAFF.value}:
        return True
    return user.role == UserRole.CLIENT.value and document.client_id == user.id


@router.get("/matters/{matter_id}/documents")
def list_matter_documents(
    matter_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    matter = get_matter_or_404(db, matter_id)
    require_client_access(current_user, matter.client_id)

    documents = (
        db.query(Document)
        .filter(Document.matter_id == matter.id)
        .order_by(Document.created_at.desc())
        .all()
    )
    return {"documents": [serialize_document(d) for d in documents]}


@router.post("/documents")
def create_document(
    body: DocumentCreate,
    current_user: User = Depends(require_role(UserRole.LAWYER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    client = db.query(User).filter(User.id == body.client_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    if body.matter_id:
        matter = get_matter_or_404(db, body.matter_id)
        if matter.client_id != client.id:
            raise HTTPException(status_code=400, detail="Matter does not belong to this client")

    document = Document(
        title=body.title,
        description=body.description,
        client_id=client.id,
        matter_id=body.matter_id or None,
        content=sanitize_html(body.content),
        status=DocumentStatus.DRAFT.value,
    )
    db.add(document)
    db.commit()
    db.refresh(document)

    logger.info(f"📄 Document {document.id} created for client {client.id} by {current_user.id}")
    return {"success": True, "document": serialize_document(document, include_content=True)}


@router.get("/documents/{document_id}")
def get_document(
    document_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    row = (
        db.query(Document, User)
        .outerjoin(User, Document.client_id == User.id)
        .filter(Document.id == document_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Document not found")

    document, client = row
    require_client_access(current_user, document.client_id)

    return {
        "document": {
            **serialize_document(document, include_content=True),
            "client_first_name": client.first_name if client else None,
            "client_last_name": client.last_name if client else None,
            "client_email": client.email if client else None,
        }
    }


@router.put("/documents/{document_id}/status")
def update_document_status(
    document_id: str,
    body: DocumentStatusUpdate,
    current_user: User = Depends(require_role(UserRole.LAWYER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    if not body.status:
        raise HTTPException(status_code=400, detail="Status is required")
    if body.status not in VALID_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")

    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    document.status = body.status
    stamp_field = STATUS_TIMESTAMPS.get(body.status)
    if stamp_field and getattr(document, stamp_field) is None:
        setattr(document, stamp_field, datetime.utcnow())

    db.commit()
    logger.info(f"📄 Document {document.id} status -> {body.status} by {current_user.id}")
    return {"success": True, "status": body.status}


@router.delete("/documents/{document_id}")
def delete_document(
    document_id: str,
    body: Optional[DocumentDeleteRequest] = Body(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    if not can_delete_document(current_user, document):
        raise HTTPException(status_code=403, detail="Not authorized to delete this document")

    confirmed = body.confirm_delete if body else False
    if document.status != DocumentStatus.DRAFT.value and not confirmed:
        raise HTTPException(
            status_code=400,
            detail=f"This document has status {document.status}. Set confirmDelete: true to proceed.",
        )

    deleted = {"id": document.id, "title": document.title, "status": document.status}
    db.delete(document)
    db.commit()

    logger.info(f"🗑️ Document {document_id} ({deleted['status']}) deleted by {current_user.id}")
    return {"success": True, "deleted": deleted}
