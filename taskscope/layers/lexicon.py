"""
범위 판정에 쓰이는 다국어 어휘 사전입니다.

- 섹션 종류를 판별하는 제목 표식 (중국어/영어/한국어)
- 선택 항목, 제외 항목, 우선순위 표식
- 요구사항/태스크 분류(category) 표식

모든 표식은 NFKC 정규화 + casefold 된 텍스트와 비교합니다.
라틴 문자 표식은 단어 경계로, CJK/한글 표식은 부분 문자열로 매칭합니다.
"""

import re
import unicodedata
from collections import OrderedDict
from typing import Iterable, Optional

# ==================== 섹션 종류 ====================

KIND_FUNCTIONAL = "functional"
KIND_NON_FUNCTIONAL = "non_functional"
KIND_CONSTRAINT = "constraint"
KIND_OPTIONAL = "optional"
KIND_EXCLUDED = "excluded"
KIND_INFO = "info"

# 항목을 요구사항으로 추출하는 섹션 종류
REQUIREMENT_KINDS = {KIND_FUNCTIONAL, KIND_NON_FUNCTIONAL, KIND_CONSTRAINT, KIND_OPTIONAL}

# 판별 순서가 중요함: "非功能需求"는 "功能需求"보다 먼저 확인해야 한다
SECTION_MARKERS: list[tuple[str, tuple[str, ...]]] = [
    (KIND_EXCLUDED, (
        "out of scope", "out-of-scope", "non-goals", "non goals", "not in scope",
        "非目标", "不在范围", "范围外", "不包括", "排除项",
        "범위 외", "제외 범위", "비목표",
    )),
    (KIND_OPTIONAL, (
        "optional", "future", "nice to have", "nice-to-have", "roadmap", "phase 2",
        "可选", "未来", "后续", "二期", "扩展功能",
        "선택 기능", "향후",
    )),
    (KIND_NON_FUNCTIONAL, (
        "non-functional", "nonfunctional", "non functional", "quality attributes",
        "非功能", "质量属性",
        "비기능", "품질 속성",
    )),
    (KIND_CONSTRAINT, (
        "constraint", "limitation", "technical requirement", "tech stack",
        "约束", "限制", "技术要求", "技术栈",
        "제약", "기술 요구",
    )),
    (KIND_FUNCTIONAL, (
        "functional requirement", "functional spec", "features", "feature list",
        "core feature", "user stories", "requirements",
        "功能需求", "功能要求", "功能列表", "功能模块", "核心功能", "主要功能", "需求",
        "기능 요구", "기능 명세", "주요 기능", "요구사항",
    )),
    (KIND_INFO, (
        "overview", "background", "introduction", "summary", "goals", "objective",
        "glossary", "appendix", "references",
        "概述", "背景", "简介", "目标", "附录", "术语",
        "개요", "배경", "목표", "소개", "부록",
    )),
]

# 표식 없이 단독 줄로 나타나도 섹션 제목으로 인정하는 최대 길이
MAX_BARE_LABEL_LENGTH = 40

# 섹션 라벨에서 표식 외에 붙어도 되는 일반어 ("技术约束", "Optional Features" 등)
LABEL_FILLERS = (
    "requirements", "requirement", "features", "feature", "enhancements", "items",
    "section", "list", "and", "&", "/", "s",
    "需求", "要求", "说明", "部分", "列表", "清单", "事项", "技术", "系统", "项目", "性", "与", "和",
    "요구사항", "요구", "사항", "목록", "및",
)

# 범위 제외를 선언하는 문장 표식 (목록이 아닌 본문 줄에 적용)
EXCLUSION_STATEMENT_MARKERS = dict(SECTION_MARKERS)[KIND_EXCLUDED]

# ==================== 항목 수식어 ====================

OPTIONAL_QUALIFIERS = (
    "optional", "future", "nice to have", "nice-to-have", "phase 2",
    "可选", "未来", "后续", "二期", "将来",
    "선택 사항", "(선택)", "향후",
)

NEGATION_PREFIXES = (
    "不需要", "无需", "不支持", "不包括", "不包含", "不做", "暂不", "不提供", "不涉及",
    "no ", "not ", "without ",
    "불필요", "지원하지 않",
)

NEGATION_PHRASES = (
    "not required", "out of scope", "will not", "won't",
    "不在范围", "不考虑",
    "범위 외", "제외",
)

HIGH_PRIORITY_MARKERS = (
    "高优先级", "优先级高", "优先级:高", "必须",
    "must have", "must-have", "critical", "high priority", "p0", "p1",
    "필수", "높음", "최우선",
)

LOW_PRIORITY_MARKERS = (
    "低优先级", "优先级低", "优先级:低",
    "low priority", "p3", "p4",
    "낮음",
)

# ==================== 분류(category) ====================

CATEGORY_MARKERS: "OrderedDict[str, tuple[str, ...]]" = OrderedDict([
    ("authentication", (
        "login", "log in", "logout", "sign in", "signin", "sign up", "signup",
        "register", "registration", "authentication", "authenticate", "auth",
        "password", "oauth", "sso", "2fa", "jwt", "token",
        "登录", "登陆", "注册", "认证", "身份验证", "密码", "账号",
        "로그인", "회원가입", "인증", "비밀번호",
    )),
    ("authorization", (
        "permission", "role", "rbac", "access control",
        "权限", "角色", "授权",
        "권한", "역할",
    )),
    ("payment", (
        "payment", "pay", "billing", "invoice", "checkout", "subscription", "credit card",
        "支付", "付款", "计费", "订阅", "账单",
        "결제", "구독",
    )),
    ("notification", (
        "notification", "notify", "email", "sms", "push", "alert",
        "通知", "提醒", "推送", "邮件", "短信",
        "알림", "이메일",
    )),
    ("security", (
        "security", "encrypt", "encryption", "xss", "csrf", "vulnerability",
        "安全", "加密",
        "보안", "암호화",
    )),
    ("search", (
        "search", "filter", "query",
        "搜索", "检索", "查询", "筛选", "过滤",
        "검색", "필터",
    )),
    ("reporting", (
        "report", "dashboard", "analytics", "chart", "statistics", "export",
        "报表", "报告", "统计", "图表", "仪表盘", "导出",
        "리포트", "보고서", "통계", "대시보드",
    )),
    ("file_management", (
        "upload", "download", "attachment",
        "上传", "下载", "附件",
        "업로드", "다운로드", "첨부",
    )),
    ("integration", (
        "webhook", "integration", "third-party", "third party",
        "集成", "第三方", "对接",
        "연동", "외부 연계",
    )),
    ("i18n", (
        "i18n", "localization", "translation", "multilingual",
        "国际化", "多语言", "翻译",
        "다국어", "번역",
    )),
    ("collaboration", (
        "share", "comment", "collaborate", "collaboration", "team",
        "共享", "分享", "评论", "团队", "协作",
        "공유", "댓글", "협업",
    )),
    ("performance", (
        "performance", "latency", "response time", "throughput", "cache",
        "性能", "响应时间", "速度", "加载",
        "성능", "응답 시간",
    )),
    ("availability", (
        "availability", "uptime", "reliability", "backup",
        "可用性", "在线时间", "稳定性", "备份",
        "가용성", "백업",
    )),
    ("compatibility", (
        "compatibility", "browser", "mobile", "responsive",
        "兼容", "浏览器", "移动端", "响应式",
        "호환", "브라우저", "모바일",
    )),
    ("data_storage", (
        "database", "storage", "persistence", "json", "sql",
        "存储", "数据库", "持久化",
        "저장", "데이터베이스",
    )),
    ("ui", (
        "ui", "interface", "layout", "page", "screen", "frontend", "web",
        "界面", "页面", "布局", "前端",
        "화면", "인터페이스",
    )),
    ("task_management", (
        "task", "tasks", "todo", "to-do",
        "任务", "待办",
        "태스크", "할 일", "작업",
    )),
])

# 섹션 종류별 기본 분류 (표식이 하나도 없을 때)
KIND_DEFAULT_CATEGORY = {
    KIND_FUNCTIONAL: "functional",
    KIND_NON_FUNCTIONAL: "non_functional",
    KIND_CONSTRAINT: "technical",
    KIND_OPTIONAL: "general",
}

_LATIN_MARKER = re.compile(r"^[a-z0-9 \-]+$")
_pattern_cache: dict[str, re.Pattern] = {}


def normalize(text: str) -> str:
    """NFKC 정규화 후 casefold."""
    return unicodedata.normalize("NFKC", text or "").casefold()


def _marker_pattern(marker: str) -> re.Pattern:
    pattern = _pattern_cache.get(marker)
    if pattern is None:
        if _LATIN_MARKER.match(marker):
            pattern = re.compile(r"(?<![a-z0-9])" + re.escape(marker) + r"(?![a-z0-9])")
        else:
            pattern = re.compile(re.escape(marker))
        _pattern_cache[marker] = pattern
    return pattern


def count_markers(normalized_text: str, markers: Iterable[str]) -> int:
    """정규화된 텍스트에서 표식이 나타난 횟수의 합."""
    return sum(len(_marker_pattern(m).findall(normalized_text)) for m in markers)


def contains_marker(normalized_text: str, markers: Iterable[str]) -> bool:
    return any(_marker_pattern(m).search(normalized_text) for m in markers)


def classify_section(title: str) -> Optional[str]:
    """섹션 제목으로 섹션 종류를 판별합니다. 판별할 수 없으면 None."""
    text = normalize(title)
    for kind, markers in SECTION_MARKERS:
        if contains_marker(text, markers):
            return kind
    return None


def _label_pattern(marker: str) -> re.Pattern:
    # 라벨에서는 라틴 표식의 복수형도 허용 ("constraints", "functional requirements")
    if _LATIN_MARKER.match(marker):
        return re.compile(r"(?<![a-z0-9])" + re.escape(marker) + r"s?(?![a-z0-9])")
    return _marker_pattern(marker)


def _only_fillers(residue: str) -> bool:
    residue = residue.strip(" -_:：、,，.()（）")
    while residue:
        for filler in sorted(LABEL_FILLERS, key=len, reverse=True):
            if residue.startswith(filler):
                rest = residue[len(filler):]
                # 라틴 일반어는 단어 단위로만 떼어낸다
                if _LATIN_MARKER.match(filler) and rest[:1].isalnum():
                    continue
                residue = rest.strip(" -_:：、,，.()（）")
                break
        else:
            return False
    return True


def match_section_label(label: str) -> Optional[str]:
    """
    줄 전체가 섹션 라벨일 때만 섹션 종류를 반환합니다.

    classify_section과 달리 표식을 포함하기만 해서는 안 되고,
    표식을 뺀 나머지가 LABEL_FILLERS 일반어뿐이어야 합니다.
    "技术约束", "Optional Features"는 라벨이고 "设置任务背景颜色"는 아닙니다.
    """
    text = normalize(label).strip()
    for kind, markers in SECTION_MARKERS:
        for marker in sorted(markers, key=len, reverse=True):
            found = _label_pattern(marker).search(text)
            if found and _only_fillers(text[: found.start()] + " " + text[found.end():]):
                return kind
    return None


def detect_categories(text: str) -> list[str]:
    """텍스트에 나타난 분류를 표식 출현 횟수 내림차순(동률은 사전 순서)으로 반환합니다."""
    normalized = normalize(text)
    scored = []
    for index, (category, markers) in enumerate(CATEGORY_MARKERS.items()):
        hits = count_markers(normalized, markers)
        if hits:
            scored.append((-hits, index, category))
    return [category for _, _, category in sorted(scored)]


def primary_category(text: str, kind: Optional[str] = None) -> str:
    categories = detect_categories(text)
    if categories:
        return categories[0]
    return KIND_DEFAULT_CATEGORY.get(kind or "", "general")


def is_exclusion_statement(normalized_text: str) -> bool:
    """범위 제외를 선언하는 문장인지 ("不需要…", "本期不包括…", "out of scope …")."""
    if normalized_text.startswith(NEGATION_PREFIXES):
        return True
    return contains_marker(normalized_text, NEGATION_PHRASES + EXCLUSION_STATEMENT_MARKERS)
