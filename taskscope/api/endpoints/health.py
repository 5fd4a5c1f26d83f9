"""
헬스 체크(Health Check) 엔드포인트입니다.
서버가 살아서 정상적으로 응답하는지 확인하는 용도입니다.
"""

from fastapi import APIRouter

from taskscope.config import get_settings
from taskscope.services import get_scope_service

router = APIRouter()


@router.get("")
async def health_check():
    """
    기본 상태 확인 함수.
    서버가 켜져 있으면 {"status": "healthy"}를 반환합니다.
    """
    return {"status": "healthy"}


@router.get("/detail")
async def health_check_detail():
    """
    상세 상태 확인 함수.
    범위 판정 기준값과 저장소, 잠금, 캐시 상태를 같이 보여줍니다.
    """
    settings = get_settings()
    service = get_scope_service()
    return {
        "status": "healthy",
        "config": {
            "storage_backend": settings.storage_backend,
            "scope_low_threshold": settings.scope_low_threshold,  # 이 값 미만이면 약한 매칭
            "scope_high_threshold": settings.scope_high_threshold,  # 이 값 이상이면 범위 안
            "auto_file_confidence_threshold": settings.auto_file_confidence_threshold,
            "low_confidence_threshold": settings.low_confidence_threshold,
        },
        **service.status(),
    }
