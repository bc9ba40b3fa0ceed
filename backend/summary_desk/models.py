# backend/summary_desk/models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase names the web client sends."""
    model_config = ConfigDict(populate_by_name=True)


# ---------- Catalog ----------
class Document(CamelModel):
    """One uploaded PDF. has_summary and download_url are derived on every catalog build."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str                                   # filename as stored, includes ".pdf"
    storage_key: str = Field(alias="storageKey")  # uploads/<name>
    uploaded_at: datetime = Field(alias="uploadedAt")
    has_summary: bool = Field(alias="hasSummary")
    download_url: str = Field(alias="downloadUrl")


class DocumentsResponse(CamelModel):
    documents: List[Document] = Field(default_factory=list)


class SummaryResponse(CamelModel):
    content: str


# ---------- Uploads ----------
class UploadUrlRequest(CamelModel):
    filename: str


class UploadUrlResponse(CamelModel):
    upload_url: str = Field(alias="uploadUrl")
    key: str


# ---------- Deletion ----------
class DeleteRequest(CamelModel):
    pdf_path: str = Field(alias="pdfPath")
    has_summary: bool = Field(default=False, alias="hasSummary")


class DeleteResponse(CamelModel):
    success: bool = True
    summary_deleted: bool = Field(default=False, alias="summaryDeleted")
    anomalies: List[str] = Field(default_factory=list)
    refresh: bool = True  # caller must reload the catalog after any delete


# ---------- Summary generation ----------
class GenerationStatusResponse(CamelModel):
    name: str
    state: str
    has_summary: bool = Field(default=False, alias="hasSummary")
    message: Optional[str] = None


# ---------- Session ----------
class SessionResponse(CamelModel):
    user_id: str = Field(alias="userId")
    spin_up_triggered: bool = Field(alias="spinUpTriggered")
    in_progress: List[str] = Field(default_factory=list, alias="inProgress")
