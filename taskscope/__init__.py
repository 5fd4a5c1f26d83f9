"""PRD 범위 거버넌스 엔진 (taskscope)."""

__version__ = "1.0.0"
