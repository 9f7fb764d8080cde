"""
schemas/common.py

- 프로젝트 전반에서 재사용할 공용 스키마 모음
- Pydantic v2 기준
- 포함 내용:
  1) 에러 응답 표준: ErrorResponse ({"success": false, "error": "..."})
  2) 날짜 문자열 파싱: parse_date()
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


# =========================================================
# 1) 에러 응답 표준
# =========================================================

class ErrorResponse(BaseModel):
    """
    전역 에러 핸들러에서 내려주는 표준 에러 응답
    - 세부 코드 없이 짧은 메시지 하나만 전달
    """
    success: bool = False
    error: str = Field(..., description="사람이 읽을 수 있는 짧은 에러 메시지")

    model_config = ConfigDict(extra="ignore")


# =========================================================
# 2) 날짜 파싱
# =========================================================

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value: str) -> date:
    """ "2024-01-10" → date. 형식이 틀리면 ValueError """
    return datetime.strptime(value, DATE_FORMAT).date()
