"""
PRD 범위 거버넌스 엔진의 메인 진입점 파일입니다.
웹 서버 애플리케이션을 생성하고 설정하는 역할을 담당합니다.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskscope import __version__
from taskscope.config import get_settings
from taskscope.api.router import api_router
from taskscope.exceptions import ScopeEngineError
from taskscope.models import ErrorResponse

logger = logging.getLogger(__name__)


def _error_body(error_code: str, message: str, details=None) -> dict:
    return ErrorResponse(error_code=error_code, message=message, details=details).model_dump(mode="json")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션의 생명주기(시작과 종료)를 관리하는 함수입니다.
    시작할 때 로깅을 설정하고 저장소 위치를 출력합니다.
    """
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"범위 거버넌스 엔진이 다음 주소에서 시작됩니다: {settings.host}:{settings.port}")
    logger.info(f"저장소: {settings.storage_backend} ({settings.data_dir})")

    yield

    logger.info("범위 거버넌스 엔진이 종료됩니다")


def create_app() -> FastAPI:
    """
    FastAPI 웹 애플리케이션을 생성하고 설정하는 함수입니다.

    주요 기능:
    1. 기본 앱 정보 설정 (제목, 설명 등)
    2. CORS 설정
    3. 예외 → 구조화된 JSON 응답 변환
    4. API 라우터 연결 (/api/v1)
    """
    settings = get_settings()

    app = FastAPI(
        title="PRD 범위 거버넌스 엔진",
        description="PRD 요구사항 베이스라인 대비 태스크 범위 판정, 변경 요청 관리, 범위 건강도 보고",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 글로벌 예외 핸들러: 커스텀 예외를 구조화된 JSON 응답으로 변환
    @app.exception_handler(ScopeEngineError)
    async def scope_error_handler(request: Request, exc: ScopeEngineError):
        if exc.status_code >= 500:
            logger.error(f"[{exc.error_code}] {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, exc.details),
        )

    # 요청 본문 형식 오류도 ERR_VALID_001(400)로 통일
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(x) for x in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body("ERR_VALID_001", "요청 형식이 올바르지 않습니다", {"errors": errors}),
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.error(f"처리되지 않은 예외: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body("ERR_INTERNAL", "내부 서버 오류가 발생했습니다"),
        )

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """루트 엔드포인트: 서버의 기본 정보를 반환합니다."""
        return {
            "name": "PRD 범위 거버넌스 엔진",
            "version": __version__,
            "docs": "/docs",
            "api": "/api/v1",
        }

    return app


# 애플리케이션 인스턴스 생성
app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "taskscope.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
