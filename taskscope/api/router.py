"""
API 라우터 설정 파일입니다.
각 기능별로 나누어진 API 주소들을 하나로 모으는 역할을 합니다.
"""

from fastapi import APIRouter

from taskscope.api.endpoints import health, projects, prd, scope, change_requests, tasks

# 메인 API 라우터 생성
api_router = APIRouter()

# 헬스 체크 엔드포인트: 서버 상태 확인용 (/health)
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)

# 프로젝트 엔드포인트 (/projects)
api_router.include_router(
    projects.router,
    prefix="/projects",
    tags=["projects"]
)

# PRD 문서 업로드 (/projects/{project_id}/prd)
api_router.include_router(
    prd.router,
    prefix="/projects/{project_id}/prd",
    tags=["prd"]
)

# 범위 관리 엔드포인트: 베이스라인, 범위 검사, 연결, 건강도 (/projects/{project_id}/scope)
api_router.include_router(
    scope.router,
    prefix="/projects/{project_id}/scope",
    tags=["scope"]
)

# 변경 요청 엔드포인트 (/projects/{project_id}/scope/change-requests...)
api_router.include_router(
    change_requests.router,
    prefix="/projects/{project_id}/scope",
    tags=["change-requests"]
)

# 태스크 엔드포인트: 생성/수정 시 범위 검사 훅 실행 (/projects/{project_id}/tasks)
api_router.include_router(
    tasks.router,
    prefix="/projects/{project_id}/tasks",
    tags=["tasks"]
)
