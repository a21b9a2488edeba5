"""
Request and response bodies for the conversion service.

Field names on the wire are camelCase; Python attributes are snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class MarkdownRequest(_WireModel):
    # Optional here so a missing field is answered with the service's own 400 body
    output: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")
    webhook_url: str | None = Field(default=None, alias="webhookUrl")
    execution_mode: str | None = Field(default=None, alias="executionMode")


class GoogleDocResponse(_WireModel):
    document_id: str = Field(alias="documentId")
    url: str
    docx_id: str | None = Field(default=None, alias="docxId")
    docx_url: str | None = Field(default=None, alias="docxUrl")
    status: int = 200
    file_name: str = Field(alias="fileName")
    webhook_url: str | None = Field(default=None, alias="webhookUrl")
    execution_mode: str | None = Field(default=None, alias="executionMode")


class ErrorResponse(_WireModel):
    error: str
    details: str | None = None
    status: int = 500


class DocxPreviewRequest(_WireModel):
    markdown: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")
