from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent / "data" / "diary.db"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DIARY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_title: str = Field(default="Diary Timeline API", description="FastAPI application title")
    app_description: str = Field(
        default="匯入的日記文件依日期整理成時間軸的本機 API",
        description="OpenAPI 說明文字",
    )
    allowed_origins: str = Field(
        default="*",
        description="CORS 允許的來源（以逗號分隔）",
    )
    log_level: str = Field(
        default="INFO",
        description="應用程式日誌等級 (DEBUG/INFO/WARNING/ERROR/CRITICAL)",
    )
    enable_request_logging: bool = Field(
        default=True,
        description="是否輸出每個請求的日誌",
    )
    db_path: str = Field(
        default=str(DEFAULT_DB_PATH),
        description="儲存日記與偏好設定的 SQLite 檔案",
    )
    legacy_db_path: str = Field(
        default="",
        description="舊版日記 SQLite 檔案，留空則不進行遷移",
    )
    title_max_length: int = Field(
        default=42,
        ge=1,
        le=400,
        description="內文行可作為標題的最大字數",
    )
    snippet_max_length: int = Field(
        default=56,
        ge=8,
        le=2_000,
        description="時間軸預覽的最大字數",
    )
    compact_snippet_max_length: int = Field(
        default=38,
        ge=8,
        le=2_000,
        description="隨機卡片預覽的最大字數",
    )
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="上傳檔案大小上限（位元組）",
    )
    favorites_key: str = Field(
        default="memorial-m-diary-favorites-v1",
        description="儲存收藏清單的偏好鍵",
    )
    claimed_names_key: str = Field(
        default="memorial-diary-b-meta-v1",
        description="其他功能已使用的文件名稱所在的偏好鍵（遷移時排除）",
    )

    @property
    def origin_list(self) -> List[str]:
        raw = (self.allowed_origins or "").strip()
        if not raw or raw == "*":
            return ["*"]
        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        candidate = value.upper()
        if candidate not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            logging.getLogger("diary_timeline.settings").warning(
                "Unknown log level '%s', falling back to INFO.", value
            )
            return "INFO"
        return candidate


settings = Settings()
