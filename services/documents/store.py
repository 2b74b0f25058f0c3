from __future__ import annotations

import logging
import mimetypes
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional

from sqlalchemy.orm import Session

from core.config import Settings, settings
from core.errors import NotFoundError
from domain.models import DocumentType
from services.persistence.blobs import BlobTooLargeError, FilesystemBlobStore
from services.persistence.repositories import ApplicationRepository, DocumentRepository
from services.persistence.tables import Document, User
from services.workflow.applications import load_application
from services.workflow.audit import AuditTrail
from services.workflow.permissions import (
    check_application_access,
    check_application_owner,
    require,
)

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    filename: str
    content_type: Optional[str]
    stream: BinaryIO
    size: Optional[int] = None  # when the transport already knows it


@dataclass
class FileRejection:
    filename: str
    reason: str


@dataclass
class UploadResult:
    documents: list[Document] = field(default_factory=list)
    rejected: list[FileRejection] = field(default_factory=list)


class DocumentStore:
    def __init__(
        self,
        session: Session,
        blobs: FilesystemBlobStore | None = None,
        cfg: Settings = settings,
    ):
        self.session = session
        self.settings = cfg
        self.blobs = blobs or FilesystemBlobStore(cfg.STORAGE_ROOT)
        self.applications = ApplicationRepository(session)
        self.repo = DocumentRepository(session)
        self.audit = AuditTrail(session)

    def _check_type(self, f: IncomingFile) -> tuple[str, str] | FileRejection:
        name = Path(f.filename or "").name
        ext = Path(name).suffix.lower()
        if ext not in self.settings.ALLOWED_EXTENSIONS:
            return FileRejection(name, "only PDF, DOC and DOCX files are allowed")
        ctype = f.content_type or mimetypes.guess_type(name)[0] or ""
        if ctype not in self.settings.ALLOWED_MIME:
            return FileRejection(name, f"unsupported content-type: {ctype or 'unknown'}")
        return ext, ctype

    def upload(
        self,
        application_id: str,
        files: Iterable[IncomingFile],
        document_type: Optional[str],
        caller: User,
    ) -> UploadResult:
        application = load_application(self.applications, application_id)
        require(check_application_owner(caller, application))
        doc_type = (document_type or "").strip() or DocumentType.OTHER.value
        limit = self.settings.max_upload_bytes
        too_big = f"file exceeds {self.settings.MAX_UPLOAD_MB} MB limit"
        result = UploadResult()

        for f in files:
            checked = self._check_type(f)
            if isinstance(checked, FileRejection):
                result.rejected.append(checked)
                continue
            ext, ctype = checked
            original = Path(f.filename).name
            if f.size is not None and f.size > limit:
                result.rejected.append(FileRejection(original, too_big))
                continue

            stored_name = f"{uuid.uuid4().hex}{ext}"
            try:
                size = self.blobs.write(stored_name, f.stream, max_bytes=limit)
            except BlobTooLargeError:
                result.rejected.append(FileRejection(original, too_big))
                continue

            try:
                document = self.repo.add(
                    Document(
                        application=application,
                        stored_name=stored_name,
                        original_name=original,
                        mime_type=ctype,
                        size=size,
                        document_type=doc_type,
                    )
                )
                self.audit.record(
                    application.id,
                    caller,
                    "uploaded_document",
                    {"document_id": document.id, "document_type": doc_type},
                )
                self.session.commit()
            except Exception:
                self.session.rollback()
                self.blobs.delete(stored_name)
                raise
            result.documents.append(document)

        for r in result.rejected:
            logger.info("rejected upload %s for %s: %s", r.filename, application.reference_number, r.reason)
        logger.info(
            "application %s: %d document(s) stored, %d rejected",
            application.reference_number,
            len(result.documents),
            len(result.rejected),
        )
        return result

    def _load(self, document_id: str) -> Document:
        document = self.repo.get(document_id)
        if document is None:
            raise NotFoundError(f"document {document_id} not found")
        return document

    def download(self, document_id: str, caller: User) -> tuple[Document, Path]:
        document = self._load(document_id)
        require(check_application_access(caller, document.application))
        if not self.blobs.exists(document.stored_name):
            raise NotFoundError("file not found")
        return document, self.blobs.path(document.stored_name)

    def delete(self, document_id: str, caller: User) -> None:
        document = self._load(document_id)
        require(check_application_access(caller, document.application))
        application, stored_name = document.application, document.stored_name
        self.repo.delete(document)
        self.audit.record(application.id, caller, "deleted_document", {"document_id": document_id})
        self.session.commit()
        self.session.expire(application, ["documents"])
        self.blobs.delete(stored_name)
