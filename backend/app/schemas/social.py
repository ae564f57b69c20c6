from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Comment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lesson_id: UUID
    author_id: UUID
    author_subject_id: str
    author_name: Optional[str] = None
    author_photo_url: Optional[str] = None
    body: str
    created_at: datetime


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    body: str = Field(min_length=1, max_length=2000)


class CommentListResponse(BaseModel):
    items: List[Comment]


class ReportReason(str, Enum):
    inappropriate = "inappropriate"
    hate_speech = "hate_speech"
    misleading = "misleading"
    spam = "spam"
    sensitive = "sensitive"
    other = "other"


class Report(BaseModel):
    id: UUID
    lesson_id: UUID
    reporter_id: UUID
    reason: ReportReason
    details: Optional[str] = None
    created_at: datetime


class ReportCreateRequest(BaseModel):
    reason: ReportReason
    details: Optional[str] = Field(default=None, max_length=1000)


class ReportSummary(BaseModel):
    lesson_id: UUID
    lesson_title: str
    report_count: int
    reasons: List[ReportReason]
    latest_report_at: datetime


class ReportSummaryListResponse(BaseModel):
    items: List[ReportSummary]
