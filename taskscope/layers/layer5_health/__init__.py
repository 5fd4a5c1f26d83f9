from .reporter import HealthReporter

__all__ = ["HealthReporter"]
