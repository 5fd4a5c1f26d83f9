"""
PRD 문서 업로드 API입니다.
업로드된 문서는 프로젝트 docs 폴더에 저장되고, analyze-prd에서 경로로 참조합니다.
"""

from fastapi import APIRouter
from pydantic import Field

from taskscope.models import CamelModel
from taskscope.services import get_scope_service

router = APIRouter()


class PrdUploadRequest(CamelModel):
    filename: str = Field(..., description="저장할 파일명 (예: prd.md)")
    content: str = Field(..., description="PRD 본문 (텍스트/마크다운)")


@router.post("/upload", status_code=201)
async def upload_prd(project_id: str, request: PrdUploadRequest) -> dict:
    """PRD 문서 저장. 응답의 prdFilePath를 analyze-prd에 그대로 넘기면 됩니다."""
    service = get_scope_service()
    return await service.upload_prd(project_id, request.filename, request.content)
