"""
범위 거버넌스 엔진 커스텀 예외 계층입니다.
각 예외는 구조화된 에러 코드와 HTTP 상태 코드를 함께 가집니다.
"""

from typing import Optional, Any


class ScopeEngineError(Exception):
    """범위 거버넌스 엔진 기본 예외 클래스."""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = "ERR_UNKNOWN",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(ScopeEngineError):
    """입력 유효성 검증 에러 (PRD 경로 누락, 잘못된 태스크 페이로드 등)."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_VALID_001", details=details)


class NotFoundError(ScopeEngineError):
    """프로젝트, 요구사항, 태스크, 변경 요청을 찾을 수 없음."""

    status_code = 404

    def __init__(self, kind: str, identifier: str, details: Optional[Any] = None):
        self.kind = kind
        self.identifier = identifier
        merged = {"kind": kind, "id": identifier}
        if details:
            merged.update(details)
        super().__init__(
            f"{kind}을(를) 찾을 수 없습니다: {identifier}",
            error_code="ERR_NOT_FOUND_001",
            details=merged,
        )


class ConflictError(ScopeEngineError):
    """허용되지 않는 상태 전이 또는 중복 생성."""

    status_code = 409

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_CONFLICT_001", details=details)


class LockTimeoutError(ScopeEngineError):
    """프로젝트 리소스 잠금 획득 시간 초과."""

    status_code = 503

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_LOCK_001", details=details)


class StorageError(ScopeEngineError):
    """파일 저장소 관련 에러."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_STORE_001", details=details)


class ExtractionError(ScopeEngineError):
    """베이스라인 추출 내부 오류."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_EXTRACT_001", details=details)
