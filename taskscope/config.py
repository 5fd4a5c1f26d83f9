from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    애플리케이션의 설정을 관리하는 클래스입니다.
    환경 변수(TASKSCOPE_ 접두어) 또는 .env 파일에서 설정값을 읽어옵니다.
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKSCOPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 저장소 설정: 프로젝트별 데이터가 저장될 위치와 저장 방식
    data_dir: str = "data"
    storage_backend: str = "file"  # file | memory

    # 범위 판정 임계값 (유사도 0~1)
    scope_low_threshold: float = 0.15  # 이 값 미만이면 매칭 없음으로 간주
    scope_high_threshold: float = 0.5  # 이 값 이상이면 확실한 범위 내
    max_matched_requirements: int = 3
    auto_file_confidence_threshold: float = 0.8  # 범위 밖 판정의 자동 변경요청 기준
    low_confidence_threshold: float = 0.6

    # 건강도 보고 설정
    trend_window_days: int = 7
    trend_tolerance: int = 0
    compliance_warning_threshold: float = 70.0
    coverage_warning_threshold: float = 50.0
    report_cache_ttl_seconds: float = 2.0

    # 동시성 설정
    lock_timeout_seconds: float = 30.0

    # 입력 제한
    max_prd_size_kb: int = 1024
    max_filename_length: int = 255

    # 자동 생성 레코드의 요청자 이름
    system_actor: str = "system"

    # 서버 설정: 서버가 실행될 주소와 포트 번호
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = ["*"]
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """
    설정을 가져오는 함수입니다.
    한 번 읽은 설정은 메모리에 저장해두고 재사용합니다.
    """
    return Settings()
