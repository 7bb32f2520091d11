from __future__ import annotations

import io
import time
from html import escape
from typing import Tuple

from fastapi import HTTPException, UploadFile

from .date_parser import to_base_title
from .models import RawDocument
from .text_cleaner import document_text

TEXT_EXTENSIONS = {".txt"}
DOCUMENT_EXTENSIONS = {".docx"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | DOCUMENT_EXTENSIONS
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
READ_CHUNK_SIZE = 1 * 1024 * 1024  # 1 MB


async def extract_document_from_upload(
    upload: UploadFile,
    *,
    max_file_size: int = MAX_FILE_SIZE,
) -> Tuple[RawDocument, str]:
    """Turn an uploaded ``.txt`` or ``.docx`` file into a RawDocument plus a short preview."""
    filename = (upload.filename or "").strip()
    if not filename:
        raise HTTPException(status_code=400, detail="缺少檔案名稱。")
    extension = _infer_extension(filename)

    if extension not in SUPPORTED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="不支援的檔案格式，僅接受 .txt 與 .docx。")

    try:
        if extension in TEXT_EXTENSIONS:
            plain_text = await _read_txt(upload, limit=max_file_size)
            rich_text = ""
        else:
            plain_text = ""
            rich_text = await _read_docx(upload, limit=max_file_size)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=400, detail="解析檔案時發生錯誤。") from exc

    text = document_text(plain_text, rich_text)
    if not text:
        raise HTTPException(status_code=400, detail="無法從檔案中取得文字內容。")

    document = RawDocument(
        name=filename,
        title=to_base_title(filename),
        plain_text=plain_text,
        rich_text=rich_text,
        imported_at=time.time() * 1000,
    )
    preview = text[:200].replace("\n", " ")
    return document, preview


def _infer_extension(filename: str) -> str:
    lowered = filename.lower()
    for extension in SUPPORTED_EXTENSIONS:
        if lowered.endswith(extension):
            return extension
    return ""


async def _read_txt(upload: UploadFile, *, limit: int) -> str:
    data = await _read_bytes(upload, limit=limit)
    return data.decode("utf-8-sig", errors="ignore")


async def _read_docx(upload: UploadFile, *, limit: int) -> str:
    from docx import Document  # type: ignore

    data = await _read_bytes(upload, limit=limit)
    document = Document(io.BytesIO(data))
    paragraphs = [f"<p>{escape(paragraph.text)}</p>" for paragraph in document.paragraphs]
    return "".join(paragraphs)


async def _read_bytes(upload: UploadFile, *, limit: int = MAX_FILE_SIZE) -> bytes:
    await upload.seek(0)
    buffer = bytearray()
    while True:
        chunk = await upload.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > limit:
            raise HTTPException(
                status_code=413,
                detail=f"檔案太大，最多支援 {limit // (1024 * 1024)}MB。",
            )
    await upload.seek(0)
    return bytes(buffer)
