"""
HTTP service for markdown conversion.

Endpoints:
- POST / and POST /mdToGoogleDoc: convert one `MarkdownRequest` or a list of them
  into Google Docs, authorized by the caller's `Authorization: Bearer` token
- POST /test: return the `.docx` rendering directly (disabled in production)
- GET /health: liveness probe
"""

import asyncio
import json
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as SchemaValidationError

from api.schemas import DocxPreviewRequest, ErrorResponse, GoogleDocResponse, MarkdownRequest
from core.config import ConverterConfig, configure_logging, get_config
from core.errors import APIError, AuthenticationError, ConverterError, ValidationError
from core.utils import extract_bearer_token, redact_token, validate_markdown
from gdocs.markdown_parser import MarkdownToDocsConverter
from gdocs.writing import (
    DOCX_MIME_TYPE,
    CreatedDocument,
    build_docs_service,
    build_drive_service,
    create_doc_from_markdown,
    upload_markdown_as_docx,
)

logger = logging.getLogger(__name__)


def _json(model: GoogleDocResponse | ErrorResponse | list, status_code: int | None = None) -> JSONResponse:
    if isinstance(model, list):
        return JSONResponse(status_code=status_code or 200, content=[item.to_wire() for item in model])
    return JSONResponse(status_code=status_code or model.status, content=model.to_wire())


def _parse_items(payload: object) -> list[MarkdownRequest]:
    items = payload if isinstance(payload, list) else [payload]
    return [MarkdownRequest.model_validate(item) for item in items]


async def _convert_markdown(
    markdown: str, token: str, file_name: str, config: ConverterConfig
) -> CreatedDocument:
    converter = MarkdownToDocsConverter(config=config)
    if config.backend == "docx":
        docx_bytes = await asyncio.to_thread(converter.convert_to_docx, markdown)
        service = await asyncio.to_thread(build_drive_service, token)
        return await upload_markdown_as_docx(service, file_name, docx_bytes, upload_docx_copy=config.upload_docx_copy)

    requests = await asyncio.to_thread(converter.convert, markdown)
    service = await asyncio.to_thread(build_docs_service, token)
    return await create_doc_from_markdown(service, file_name, requests)


async def process_request(
    index: int, item: MarkdownRequest, auth_header: str | None, config: ConverterConfig
) -> GoogleDocResponse | ErrorResponse:
    """Validate and convert one request item; failures become error bodies."""
    file_name = item.file_name or config.default_file_name
    logger.info(
        f"Request {index + 1}: has_markdown={bool(item.output)}, "
        f"length={len(item.output or '')}, has_auth={bool(auth_header)}, file_name='{file_name}'"
    )

    try:
        markdown = validate_markdown(item.output)
    except ValidationError as e:
        logger.error(f"Request {index + 1}: {e}")
        return ErrorResponse(error=str(e), status=400)

    try:
        token = extract_bearer_token(auth_header)
    except AuthenticationError as e:
        logger.error(f"Request {index + 1}: {e}")
        return ErrorResponse(error=str(e), status=401)

    try:
        created = await _convert_markdown(markdown, token, file_name, config)
    except APIError as e:
        logger.error(f"Request {index + 1}: Conversion failed: {e}")
        return ErrorResponse(
            error="Failed to convert markdown to Google Doc", details=str(e), status=e.status_code or 500
        )
    except ConverterError as e:
        logger.error(f"Request {index + 1}: Conversion failed: {e}", exc_info=True)
        return ErrorResponse(error="Failed to convert markdown to Google Doc", details=str(e), status=500)
    except Exception as e:
        # Transport failures stay scoped to their item
        logger.error(f"Request {index + 1}: Unexpected error: {e}", exc_info=True)
        return ErrorResponse(error="Failed to convert markdown to Google Doc", details=str(e), status=500)

    logger.info(f"Request {index + 1}: Created {created.url}")
    return GoogleDocResponse(
        document_id=created.document_id,
        url=created.url,
        docx_id=created.docx_id,
        docx_url=created.docx_url,
        status=200,
        file_name=file_name,
        webhook_url=item.webhook_url,
        execution_mode=item.execution_mode,
    )


def create_app() -> FastAPI:
    app = FastAPI(title="md2gdocs")
    app.add_middleware(CORSMiddleware, allow_origin_regex=".*", allow_methods=["*"], allow_headers=["*"])

    @app.post("/")
    @app.post("/mdToGoogleDoc")
    async def md_to_google_doc(request: Request):
        auth_header = request.headers.get("authorization")
        logger.info(f"Received conversion request (authorization: {redact_token(auth_header, keep=20)})")

        try:
            items = _parse_items(await request.json())
        except (json.JSONDecodeError, SchemaValidationError) as e:
            logger.error(f"Malformed request body: {e}")
            return _json(ErrorResponse(error="Invalid request body", details=str(e), status=400))

        config = get_config()
        logger.info(f"Processing {len(items)} request(s)")
        results = await asyncio.gather(
            *(process_request(i, item, auth_header, config) for i, item in enumerate(items))
        )

        if len(results) == 1:
            return _json(results[0])
        return _json(list(results), status_code=200)

    @app.post("/test")
    async def test_conversion(request: Request):
        try:
            body = DocxPreviewRequest.model_validate(await request.json())
        except (json.JSONDecodeError, SchemaValidationError) as e:
            return _json(ErrorResponse(error="Invalid request body", details=str(e), status=400))

        if not body.markdown:
            return _json(ErrorResponse(error="Missing markdown content", status=400))

        config = get_config()
        if config.is_production():
            return _json(ErrorResponse(error="Test endpoint not available in production", status=403))

        logger.info(f"Test conversion: {len(body.markdown)} chars, sample={body.markdown[:100]!r}")
        try:
            docx_bytes = await asyncio.to_thread(MarkdownToDocsConverter(config=config).convert_to_docx, body.markdown)
        except ConverterError as e:
            logger.error(f"Error in test endpoint: {e}", exc_info=True)
            return _json(ErrorResponse(error=str(e), status=500))

        file_name = body.file_name or "test.docx"
        return Response(
            content=docx_bytes,
            media_type=DOCX_MIME_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    configure_logging()
    config = get_config()
    logger.info(f"Starting md2gdocs on port {config.port} (backend={config.backend}, env={config.environment})")
    uvicorn.run(app, host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    main()
