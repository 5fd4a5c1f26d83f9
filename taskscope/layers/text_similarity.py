"""
설명 가능한 토큰 겹침 기반 유사도 계산 모듈입니다.

임베딩이나 학습된 모델 없이, 같은 입력에 항상 같은 결과를 내는 규칙만 사용합니다.

토큰화 규칙:
- NFKC 정규화 + casefold
- 라틴 단어: 2자 이상, 불용어 제거, 가벼운 접미사 제거(stemming), 숫자만인 토큰 제거
- 중국어(CJK) 구간: 불용어/기능 글자에서 분리한 뒤
  2자 이하는 그대로, 짝수 길이는 2자씩, 홀수 길이는 겹치는 2-gram으로 분할
- 한글 단어: 끝의 조사를 제거하고 불용어 제거
"""

import re
from typing import Iterable

from taskscope.layers.lexicon import normalize

LATIN_STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "to", "in", "on", "for", "with", "by", "as",
    "at", "be", "is", "are", "can", "should", "must", "will", "shall", "may", "it",
    "its", "this", "that", "from", "into", "via", "we", "our", "you", "your",
    "user", "users", "system", "support", "supports", "implement", "implementation",
    "add", "allow", "allows", "able", "feature", "features", "function", "functionality",
    "provide", "provides", "new", "all", "need", "needs", "use", "using", "based",
})

CJK_STOPWORDS = (
    # 긴 것부터 제거되도록 길이 내림차순으로 정렬해 사용
    "实现", "开发", "支持", "功能", "需要", "需求", "可以", "用户", "提供", "系统", "添加",
    "包含", "包括", "所有", "进行", "使用", "能够", "一个", "相关", "以及", "通过",
    "基本", "主流", "三种", "应该", "必须", "允许",
)

# 단어 경계로 취급하는 기능 글자
CJK_SPLIT_CHARS = "的了和与及或在是个按把被将对从向给为并且也都很等"

HANGUL_STOPWORDS = frozenset({
    "사용자", "시스템", "기능", "구현", "개발", "지원", "추가", "제공", "있다", "있어야",
    "한다", "합니다", "수", "및", "또는", "모든",
})

HANGUL_PARTICLES = (
    "에서는", "으로", "에서", "하기", "한다", "합니다", "을", "를", "이", "가", "은", "는",
    "의", "에", "로", "와", "과", "도", "만",
)

LATIN_SUFFIXES = ("ingly", "ings", "ing", "ions", "ion", "ers", "er", "ed", "es", "ly", "e", "s")

MIN_PREFIX_MATCH = 4
PARTIAL_MATCH_WEIGHT = 0.5

_RUN_PATTERN = re.compile(r"[a-z0-9]+|[一-鿿]+|[가-힣]+")
_CJK_STOP_PATTERN = re.compile(
    "|".join(re.escape(w) for w in sorted(CJK_STOPWORDS, key=len, reverse=True))
    + "|[" + CJK_SPLIT_CHARS + "]"
)


def stem(word: str) -> str:
    """가벼운 영어 접미사 제거. 줄기가 3자 미만이 되면 다음 접미사를 시도합니다."""
    for suffix in LATIN_SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            return word[: -len(suffix)]
    return word


def _split_cjk(run: str) -> list[str]:
    tokens = []
    for piece in _CJK_STOP_PATTERN.split(run):
        if len(piece) < 2:
            continue
        if len(piece) == 2:
            tokens.append(piece)
        elif len(piece) % 2 == 0:
            tokens.extend(piece[i:i + 2] for i in range(0, len(piece), 2))
        else:
            tokens.extend(piece[i:i + 2] for i in range(len(piece) - 1))
    return tokens


def _strip_particle(word: str) -> str:
    for particle in HANGUL_PARTICLES:
        if word.endswith(particle) and len(word) - len(particle) >= 2:
            return word[: -len(particle)]
    return word


def tokenize(text: str) -> list[str]:
    """텍스트를 매칭용 토큰 목록으로 변환합니다 (첫 등장 순서, 중복 제거)."""
    seen: dict[str, None] = {}
    for run in _RUN_PATTERN.findall(normalize(text)):
        first = run[0]
        if first.isascii():
            if run.isdigit() or len(run) < 2 or run in LATIN_STOPWORDS:
                continue
            seen.setdefault(stem(run), None)
        elif "一" <= first <= "鿿":
            for token in _split_cjk(run):
                seen.setdefault(token, None)
        else:
            word = _strip_particle(run)
            if word not in HANGUL_STOPWORDS and len(word) >= 2:
                seen.setdefault(word, None)
    return list(seen)


def _is_latin(token: str) -> bool:
    return token[:1].isascii()


def token_match_weight(token: str, candidates: Iterable[str]) -> float:
    """
    토큰 하나가 후보 집합과 얼마나 맞는지 반환합니다.
    정확히 같으면 1.0, 4자 이상 라틴 토큰끼리 접두어 관계이면 0.5, 아니면 0.
    """
    candidate_set = candidates if isinstance(candidates, (set, frozenset)) else set(candidates)
    if token in candidate_set:
        return 1.0
    if _is_latin(token) and len(token) >= MIN_PREFIX_MATCH:
        for other in candidate_set:
            if (
                _is_latin(other)
                and len(other) >= MIN_PREFIX_MATCH
                and (other.startswith(token) or token.startswith(other))
            ):
                return PARTIAL_MATCH_WEIGHT
    return 0.0


def coverage(tokens: list[str], against: set[str]) -> tuple[float, list[str]]:
    """tokens 중 against에 맞는 비율과, 맞은 토큰 목록."""
    if not tokens:
        return 0.0, []
    total = 0.0
    matched = []
    for token in tokens:
        weight = token_match_weight(token, against)
        if weight:
            total += weight
            matched.append(token)
    return total / len(tokens), matched


def similarity(task_tokens: list[str], title_tokens: list[str], body_tokens: set[str]) -> tuple[float, list[str]]:
    """
    태스크와 요구사항 하나의 유사도 (0~1, 소수점 4자리).

    (a) 태스크 토큰 중 요구사항 제목+설명+섹션 토큰에 맞는 비율과
    (b) 요구사항 제목 토큰 중 태스크가 언급한 비율의 평균입니다.
    제목 토큰이 없으면 (a)만 사용합니다.
    """
    if not task_tokens:
        return 0.0, []
    task_cov, matched = coverage(task_tokens, body_tokens)
    if title_tokens:
        title_cov, _ = coverage(title_tokens, set(task_tokens))
        score = (task_cov + title_cov) / 2
    else:
        score = task_cov
    return round(min(max(score, 0.0), 1.0), 4), matched
