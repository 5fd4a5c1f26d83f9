from .classifier import ScopeClassifier, get_classifier, task_text

__all__ = ["ScopeClassifier", "get_classifier", "task_text"]
