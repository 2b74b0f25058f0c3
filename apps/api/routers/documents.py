from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from apps.api.deps import get_blob_store, get_current_user, get_db, get_settings
from core.errors import ValidationError
from domain.models import DocumentRead, FileRejectionRead, UploadResponse
from services.documents.store import DocumentStore, IncomingFile

router = APIRouter(tags=["documents"])


@router.post(
    "/applications/{application_id}/documents",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
)
def upload_documents(
    application_id: str,
    documents: List[UploadFile] = File(...),
    document_type: str = Form("other"),
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    blobs=Depends(get_blob_store),
    cfg=Depends(get_settings),
):
    incoming = [
        IncomingFile(filename=f.filename or "", content_type=f.content_type, stream=f.file, size=f.size)
        for f in documents
    ]
    result = DocumentStore(db, blobs, cfg).upload(application_id, incoming, document_type, user)
    if not result.documents:
        raise ValidationError(
            "no documents were accepted", {r.filename: r.reason for r in result.rejected}
        )
    return UploadResponse(
        documents=[DocumentRead.model_validate(d) for d in result.documents],
        rejected=[FileRejectionRead(filename=r.filename, reason=r.reason) for r in result.rejected],
    )


@router.get("/documents/{document_id}/download")
def download_document(
    document_id: str,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    blobs=Depends(get_blob_store),
    cfg=Depends(get_settings),
):
    document, path = DocumentStore(db, blobs, cfg).download(document_id, user)
    return FileResponse(path, media_type=document.mime_type, filename=document.original_name)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    blobs=Depends(get_blob_store),
    cfg=Depends(get_settings),
):
    DocumentStore(db, blobs, cfg).delete(document_id, user)
