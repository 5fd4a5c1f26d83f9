from .extractor import BaselineExtractor, compute_source_hash

__all__ = ["BaselineExtractor", "compute_source_hash"]
