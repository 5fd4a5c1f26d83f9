"""
Layer 1: 베이스라인 추출기 (Baseline Extractor).

PRD 원문을 섹션으로 나누고, 요구사항 섹션 안의 목록 항목을 요구사항으로 변환합니다.
같은 텍스트는 항상 같은 베이스라인(같은 ID, 같은 개수)을 만듭니다.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from taskscope.layers import lexicon
from taskscope.layers.text_similarity import tokenize
from taskscope.models import (
    BaselineMetadata,
    Priority,
    Requirement,
    RequirementBaseline,
    RequirementScope,
)

logger = logging.getLogger(__name__)

ATX_HEADING = re.compile(r"^(#{1,6})\s*(.+?)\s*#*\s*$")
SETEXT_H1 = re.compile(r"^=+$")
SETEXT_H2 = re.compile(r"^-{3,}$")
BULLET_ITEM = re.compile(r"^[-*+•·]\s+(?:\[[ xX]\]\s+)?(.+)$")
NUMBERED_ITEM = re.compile(r"^(?:\d{1,3}[.)、](?!\d)|[(（]\d{1,3}[)）])\s*(.+)$")
BOLD_LABEL_ITEM = re.compile(r"^\*\*(.+?)\*\*\s*[:：]\s*(.+)$")
ENUMERATOR = re.compile(r"^(?:\d{1,3}(?:\.\d{1,3})*(?:[.)、]|\s)|[一二三四五六七八九十]{1,3}[、.]|[(（]\d{1,3}[)）])\s*")
TITLE_SEPARATOR = re.compile(r"[:：]")
MARKUP = re.compile(r"(\*\*|__|`)")

# 단독 라벨 줄은 최상위 섹션, 콜론으로 끝나는 소제목은 가장 깊은 단계로 취급
BARE_LABEL_LEVEL = 1
COLON_SUBHEADING_LEVEL = 7
MAX_TITLE_SPLIT = 60

HEADING_MARKUP = "markup"
HEADING_LABEL = "label"
HEADING_COLON = "colon"

SCOPE_BY_KIND = {
    lexicon.KIND_FUNCTIONAL: RequirementScope.CORE,
    lexicon.KIND_NON_FUNCTIONAL: RequirementScope.EXTENDED,
    lexicon.KIND_CONSTRAINT: RequirementScope.EXTENDED,
    lexicon.KIND_OPTIONAL: RequirementScope.OPTIONAL,
}


@dataclass
class Section:
    """감지된 PRD 섹션."""
    title: str
    level: int
    kind: Optional[str]
    own_kind: Optional[str]
    start_line: int
    lines: list[tuple[int, str]] = field(default_factory=list)


@dataclass
class Candidate:
    """요구사항 후보 항목."""
    text: str
    line: int
    indent: int
    # 목록이 아닌 본문 줄에서 온 제외 선언
    statement: bool = False


def compute_source_hash(text: str) -> str:
    """줄바꿈을 정규화한 PRD 본문의 SHA-256."""
    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def _clean(text: str) -> str:
    text = MARKUP.sub("", text)
    return re.sub(r"\s+", " ", text).strip().rstrip("。.;；,，")


def _indent_width(line: str) -> int:
    expanded = line.expandtabs(4)
    return len(expanded) - len(expanded.lstrip(" "))


class BaselineExtractor:
    """PRD 텍스트를 요구사항 베이스라인으로 변환하는 추출기."""

    def detect_structure(self, content: str) -> dict:
        """
        텍스트에서 문서 구조(섹션)를 감지합니다.

        제목으로 인정하는 줄:
        - '#'으로 시작하는 마크다운 제목
        - 다음 줄이 '===' 또는 '---'인 밑줄 제목
        - 알려진 섹션 라벨만 있는 줄 ("功能需求", "Functional Requirements:" 등)
        - 콜론으로 끝나는 짧은 소제목 ("任务管理：")

        소제목의 종류를 판별할 수 없으면 가장 가까운 상위 섹션의 종류를 물려받습니다.
        """
        lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        sections: list[Section] = []
        stack: list[tuple[int, Optional[str]]] = []
        current: Optional[Section] = None
        in_code = False

        i = 0
        while i < len(lines):
            stripped = lines[i].strip()
            if stripped.startswith("```") or stripped.startswith("~~~"):
                in_code = not in_code
                i += 1
                continue
            if in_code:
                i += 1
                continue

            heading = self._match_heading(lines, i)
            if heading:
                level, title, consumed, style = heading
                while stack and stack[-1][0] >= level:
                    stack.pop()
                inherited = stack[-1][1] if stack else None
                own_kind = self._section_kind(title, style, inherited)
                kind = own_kind if own_kind is not None else inherited
                stack.append((level, kind))
                current = Section(
                    title=title, level=level, kind=kind, own_kind=own_kind, start_line=i + 1
                )
                sections.append(current)
                i += consumed
                continue

            if current is not None:
                current.lines.append((i + 1, lines[i]))
            i += 1

        return {
            "sections": sections,
            "line_count": len(lines),
            "char_count": len(content),
        }

    @staticmethod
    def _section_kind(title: str, style: str, inherited: Optional[str]) -> Optional[str]:
        """
        제목 줄의 섹션 종류.

        - 상위 종류가 없는 마크다운 제목: 표식이 들어 있기만 하면 인정
        - 하위 제목과 단독 라벨 줄: 줄 전체가 섹션 라벨일 때만 인정
        - 콜론 소제목: 라벨이거나, 제외를 선언하는 문장이면 제외 섹션
        """
        label = _clean(ENUMERATOR.sub("", title))
        if style == HEADING_MARKUP and inherited is None:
            return lexicon.classify_section(title)
        kind = lexicon.match_section_label(label)
        if kind is None and style == HEADING_COLON and lexicon.is_exclusion_statement(lexicon.normalize(label)):
            return lexicon.KIND_EXCLUDED
        return kind

    def _match_heading(self, lines: list[str], i: int) -> Optional[tuple[int, str, int, str]]:
        stripped = lines[i].strip()
        if not stripped:
            return None

        atx = ATX_HEADING.match(stripped)
        if atx:
            return len(atx.group(1)), _clean(atx.group(2)), 1, HEADING_MARKUP

        is_list_item = bool(BULLET_ITEM.match(stripped))
        if is_list_item:
            return None

        if i + 1 < len(lines) and len(stripped) <= 100:
            underline = lines[i + 1].strip()
            if SETEXT_H1.match(underline):
                return 1, _clean(stripped), 2, HEADING_MARKUP
            if SETEXT_H2.match(underline):
                return 2, _clean(stripped), 2, HEADING_MARKUP

        label = _clean(ENUMERATOR.sub("", stripped)).rstrip(":：").strip()
        enumerated = label != _clean(stripped).rstrip(":：").strip()
        limit = 20 if enumerated else lexicon.MAX_BARE_LABEL_LENGTH
        if label and len(label) <= limit and not TITLE_SEPARATOR.search(label):
            if lexicon.match_section_label(label) is not None:
                return BARE_LABEL_LEVEL, label, 1, HEADING_LABEL
            if stripped.endswith((":", "：")) and not enumerated and not BOLD_LABEL_ITEM.match(stripped):
                return COLON_SUBHEADING_LEVEL, label, 1, HEADING_COLON
        return None

    def _collect_candidates(self, section: Section) -> list[Candidate]:
        """
        섹션 본문에서 목록 항목을 모읍니다. 더 깊게 들여쓴 항목은 앞 항목의 설명으로 합칩니다.
        요구사항 섹션 안의 "本期不包括支付功能" 같은 본문 줄은 제외 선언으로만 모으고,
        뒤따르는 항목의 섹션 종류는 바꾸지 않습니다.
        """
        candidates: list[Candidate] = []
        for line_no, line in section.lines:
            stripped = line.strip()
            if not stripped:
                continue
            indent = _indent_width(line)

            text = None
            bullet = BULLET_ITEM.match(stripped) or NUMBERED_ITEM.match(stripped)
            if bullet:
                text = bullet.group(1)
            elif BOLD_LABEL_ITEM.match(stripped):
                text = stripped
            if text is None:
                if section.kind in lexicon.REQUIREMENT_KINDS and lexicon.is_exclusion_statement(
                    lexicon.normalize(_clean(stripped))
                ):
                    candidates.append(Candidate(text=stripped, line=line_no, indent=indent, statement=True))
                continue

            previous_is_item = candidates and not candidates[-1].statement
            if previous_is_item and indent >= candidates[-1].indent + 2:
                previous = candidates[-1]
                previous.text = f"{previous.text}; {_clean(text)}"
                continue
            candidates.append(Candidate(text=text, line=line_no, indent=indent))
        return candidates

    @staticmethod
    def split_title(text: str) -> tuple[str, str]:
        """첫 번째 콜론에서 제목과 설명으로 나눕니다."""
        bold = BOLD_LABEL_ITEM.match(text)
        if bold:
            return _clean(bold.group(1)), _clean(bold.group(2))
        cleaned = _clean(text)
        separator = TITLE_SEPARATOR.search(cleaned)
        if separator:
            head = cleaned[: separator.start()].strip()
            tail = cleaned[separator.end():].strip()
            if head and tail and len(head) <= MAX_TITLE_SPLIT and not head.lower().endswith(("http", "https")):
                return head, tail
        return cleaned, ""

    @staticmethod
    def is_exclusion(normalized_text: str) -> bool:
        if normalized_text.startswith(lexicon.NEGATION_PREFIXES):
            return True
        return lexicon.contains_marker(normalized_text, lexicon.NEGATION_PHRASES)

    @staticmethod
    def detect_priority(normalized_text: str) -> Priority:
        if lexicon.contains_marker(normalized_text, lexicon.HIGH_PRIORITY_MARKERS):
            return Priority.HIGH
        if lexicon.contains_marker(normalized_text, lexicon.LOW_PRIORITY_MARKERS):
            return Priority.LOW
        return Priority.MEDIUM

    @staticmethod
    def make_requirement_id(position: int, kind: str, title: str, description: str) -> str:
        fingerprint = hashlib.sha1(f"{kind}|{title}|{description}".encode("utf-8")).hexdigest()[:6]
        return f"REQ-{position:03d}-{fingerprint}"

    def extract(
        self,
        text: str,
        source_document: str = "",
        analyzed_at: Optional[datetime] = None,
    ) -> RequirementBaseline:
        """
        PRD 텍스트에서 베이스라인을 만듭니다.
        구조를 인식하지 못해도 예외를 던지지 않고, 빈 베이스라인과 경고를 반환합니다.
        """
        analyzed_at = analyzed_at or datetime.now()
        structure = self.detect_structure(text or "")
        sections: list[Section] = structure["sections"]

        requirements: list[Requirement] = []
        exclusions: list[str] = []
        warnings: list[str] = []

        for section in sections:
            if section.kind not in lexicon.REQUIREMENT_KINDS and section.kind != lexicon.KIND_EXCLUDED:
                continue
            for candidate in self._collect_candidates(section):
                cleaned = _clean(candidate.text)
                if not cleaned:
                    continue
                normalized = lexicon.normalize(cleaned)
                if candidate.statement or section.kind == lexicon.KIND_EXCLUDED or self.is_exclusion(normalized):
                    exclusions.append(cleaned)
                    continue

                title, description = self.split_title(candidate.text)
                scope = SCOPE_BY_KIND[section.kind]
                if lexicon.contains_marker(normalized, lexicon.OPTIONAL_QUALIFIERS):
                    scope = RequirementScope.OPTIONAL

                position = len(requirements) + 1
                requirements.append(Requirement(
                    id=self.make_requirement_id(position, section.kind, title, description),
                    title=title,
                    description=description,
                    scope=scope,
                    priority=self.detect_priority(normalized),
                    category=lexicon.primary_category(cleaned, section.kind),
                    section=section.title,
                    keywords=tokenize(f"{title} {description}"),
                    extracted_from=source_document,
                    created_at=analyzed_at,
                ))

        recognized = any(s.own_kind is not None for s in sections)
        if not recognized:
            warnings.append("요구사항 섹션을 인식하지 못했습니다. 제목(예: 功能需求, Functional Requirements)을 확인하세요.")
        elif not requirements:
            warnings.append("인식된 섹션에서 요구사항 목록 항목을 찾지 못했습니다.")

        baseline = RequirementBaseline(
            requirements=requirements,
            metadata=BaselineMetadata(
                prd_source_hash=compute_source_hash(text or ""),
                last_analyzed=analyzed_at,
                source_document=source_document,
                structure_recognized=recognized,
                sections_detected=[s.title for s in sections if s.kind is not None],
                exclusions=exclusions,
                warnings=warnings,
            ),
        )
        logger.info(
            f"[BaselineExtractor] 추출 완료: {source_document or '(inline)'} "
            f"요구사항 {len(requirements)}개, 제외 {len(exclusions)}개, 섹션 {len(sections)}개"
        )
        return baseline
