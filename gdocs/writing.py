"""
Google Docs Writing

Sends converter output to Google: positional requests go to a freshly created
Google Doc through one `documents.batchUpdate`; `.docx` bytes are uploaded to
Drive and converted into a Google Doc.

All client calls are blocking and run in worker threads.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from core.utils import handle_http_errors

logger = logging.getLogger(__name__)

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"


def document_url(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"


def drive_file_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


@dataclass
class CreatedDocument:
    document_id: str
    url: str
    docx_id: str | None = None
    docx_url: str | None = None


def _credentials(token: str) -> Credentials:
    return Credentials(token=token)


def build_docs_service(token: str) -> Any:
    """Build a Docs v1 client authorized with a bearer access token."""
    return build("docs", "v1", credentials=_credentials(token), cache_discovery=False)


def build_drive_service(token: str) -> Any:
    """Build a Drive v3 client authorized with a bearer access token."""
    return build("drive", "v3", credentials=_credentials(token), cache_discovery=False)


@handle_http_errors("create_doc_from_markdown")
async def create_doc_from_markdown(service: Any, title: str, requests: list[dict]) -> CreatedDocument:
    """
    Create a Google Doc and apply all conversion requests in a single batch.

    Args:
        service: Docs v1 client.
        title: Title of the new document.
        requests: Requests from `MarkdownToDocsConverter.convert`.

    Returns:
        The new document's ID and edit link.
    """
    logger.info(f"[create_doc_from_markdown] Creating '{title}' with {len(requests)} requests")

    doc = await asyncio.to_thread(service.documents().create(body={"title": title}).execute)
    doc_id = doc.get("documentId")
    logger.info(f"[create_doc_from_markdown] Created document {doc_id}")

    if requests:
        await asyncio.to_thread(service.documents().batchUpdate(documentId=doc_id, body={"requests": requests}).execute)
        logger.info(f"[create_doc_from_markdown] Applied {len(requests)} requests to {doc_id}")

    return CreatedDocument(document_id=doc_id, url=document_url(doc_id))


@handle_http_errors("upload_markdown_as_docx")
async def upload_markdown_as_docx(
    service: Any, title: str, docx_bytes: bytes, upload_docx_copy: bool = True
) -> CreatedDocument:
    """
    Upload `.docx` bytes to Drive as a Google Doc.

    Args:
        service: Drive v3 client.
        title: Name of the converted Google Doc.
        docx_bytes: Output of `render_docx`.
        upload_docx_copy: Also store the original `.docx`. Failure of this
            second upload is logged and does not fail the conversion.

    Returns:
        The converted document, plus the `.docx` copy when it was stored.
    """
    logger.info(f"[upload_markdown_as_docx] Uploading '{title}' ({len(docx_bytes)} bytes) for conversion")

    converted = await asyncio.to_thread(
        service.files()
        .create(
            body={"name": title, "mimeType": GOOGLE_DOC_MIME_TYPE},
            media_body=MediaIoBaseUpload(io.BytesIO(docx_bytes), mimetype=DOCX_MIME_TYPE, resumable=True),
            fields="id, name, webViewLink",
            supportsAllDrives=True,
        )
        .execute
    )
    doc_id = converted.get("id")
    result = CreatedDocument(document_id=doc_id, url=converted.get("webViewLink") or document_url(doc_id))
    logger.info(f"[upload_markdown_as_docx] Converted to Google Doc {doc_id}")

    if upload_docx_copy:
        try:
            copy = await asyncio.to_thread(
                service.files()
                .create(
                    body={"name": f"{title}.docx", "mimeType": DOCX_MIME_TYPE},
                    media_body=MediaIoBaseUpload(io.BytesIO(docx_bytes), mimetype=DOCX_MIME_TYPE, resumable=True),
                    fields="id, name, webViewLink",
                    supportsAllDrives=True,
                )
                .execute
            )
        except HttpError as e:
            logger.warning(f"[upload_markdown_as_docx] Could not store .docx copy of {doc_id}: {e}")
        else:
            result.docx_id = copy.get("id")
            result.docx_url = copy.get("webViewLink") or drive_file_url(result.docx_id)

    return result
