"""입력 유효성 검증 유틸리티.

PRD 파일 경로, 업로드 파일명, 태스크 페이로드의 보안 및 무결성 검증을 수행합니다.
검증은 저장보다 먼저 수행되므로, 실패 시 부분 쓰기가 일어나지 않습니다.
"""

import os
import re
from pathlib import PurePosixPath
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from taskscope.config import get_settings
from taskscope.exceptions import ValidationError
from taskscope.models import ScopeOperation, TaskContent


# 허용된 PRD 문서 확장자 목록
ALLOWED_EXTENSIONS = {".txt", ".md", ".markdown", ".text"}

# 위험한 파일명 패턴
DANGEROUS_PATTERNS = re.compile(r"[<>:\"|?*\x00-\x1f]")

DOCS_PREFIX = "docs"


def validate_filename(filename: str) -> str:
    """
    업로드 파일명 유효성 검증.

    - 경로 순회 공격 방지 (../, / 등)
    - 널 바이트 제거
    - 위험 문자 검사
    - 길이 제한
    - 확장자 검사

    Returns:
        정리된 안전한 파일명

    Raises:
        ValidationError: 유효하지 않은 파일명
    """
    settings = get_settings()

    if not filename or not filename.strip():
        raise ValidationError("파일명이 비어있습니다")

    cleaned = filename.replace("\x00", "").strip()

    basename = os.path.basename(cleaned)
    if basename != cleaned or ".." in cleaned or "\\" in cleaned:
        raise ValidationError(
            "잘못된 파일명입니다: 경로 순회가 감지되었습니다",
            details={"filename": filename},
        )

    if DANGEROUS_PATTERNS.search(basename):
        raise ValidationError(
            "파일명에 허용되지 않는 문자가 포함되어 있습니다",
            details={"filename": filename},
        )

    if len(basename) > settings.max_filename_length:
        raise ValidationError(
            f"파일명이 너무 깁니다 (최대 {settings.max_filename_length}자)",
            details={"filename": basename, "length": len(basename)},
        )

    name_without_ext, ext = os.path.splitext(basename)
    if not name_without_ext:
        raise ValidationError(
            "파일명이 비어있습니다 (확장자만 존재)",
            details={"filename": basename},
        )

    if ext.lower() not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"지원하지 않는 PRD 파일 형식입니다: {ext or '(없음)'}",
            details={"filename": basename, "allowed": sorted(ALLOWED_EXTENSIONS)},
        )

    return basename


def validate_prd_path(prd_file_path: Optional[str]) -> str:
    """
    analyze-prd의 prdFilePath를 프로젝트 docs 폴더 기준 상대 경로로 정규화합니다.

    "prd.md", "docs/prd.md", "./docs/prd.md" 는 모두 "prd.md"가 됩니다.
    절대 경로와 상위 폴더 참조는 거부합니다.
    """
    if prd_file_path is None or not str(prd_file_path).strip():
        raise ValidationError("prdFilePath는 필수입니다", details={"field": "prdFilePath"})

    raw = str(prd_file_path).replace("\x00", "").replace("\\", "/").strip()
    path = PurePosixPath(raw)
    if path.is_absolute() or ".." in path.parts:
        raise ValidationError(
            "잘못된 PRD 경로입니다: 프로젝트 docs 폴더 밖을 참조할 수 없습니다",
            details={"prdFilePath": prd_file_path},
        )

    parts = [p for p in path.parts if p not in ("", ".")]
    if parts and parts[0] == DOCS_PREFIX:
        parts = parts[1:]
    if not parts:
        raise ValidationError("prdFilePath가 파일을 가리키지 않습니다", details={"prdFilePath": prd_file_path})

    for part in parts:
        if DANGEROUS_PATTERNS.search(part):
            raise ValidationError(
                "PRD 경로에 허용되지 않는 문자가 포함되어 있습니다",
                details={"prdFilePath": prd_file_path},
            )
    return "/".join(parts)


def validate_prd_size(content: str) -> None:
    """PRD 본문 크기 검증."""
    settings = get_settings()
    max_bytes = settings.max_prd_size_kb * 1024
    size = len(content.encode("utf-8"))
    if size > max_bytes:
        raise ValidationError(
            f"PRD 문서가 너무 큽니다 (최대 {settings.max_prd_size_kb}KB)",
            details={"size_bytes": size, "max_size_bytes": max_bytes},
        )


def validate_task_payload(payload: Any) -> TaskContent:
    """
    범위 검사용 태스크 페이로드 검증.
    title은 필수이고 description/details는 문자열이어야 합니다.
    """
    if isinstance(payload, TaskContent):
        task = payload
    elif isinstance(payload, dict):
        try:
            task = TaskContent.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(
                "잘못된 태스크 형식입니다",
                details={"errors": [
                    {"field": ".".join(str(x) for x in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ]},
            )
    else:
        raise ValidationError("task는 객체여야 합니다", details={"field": "task"})
    if not task.title.strip():
        raise ValidationError("태스크 제목이 비어있습니다", details={"field": "task.title"})
    return task


def validate_operation(operation: Optional[str]) -> ScopeOperation:
    if operation is None or operation == "":
        return ScopeOperation.ADD
    try:
        return ScopeOperation(operation)
    except ValueError:
        raise ValidationError(
            f"지원하지 않는 operation입니다: {operation}",
            details={"allowed": [op.value for op in ScopeOperation]},
        )
