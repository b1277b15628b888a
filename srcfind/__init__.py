"""Linker bookkeeping, source catalogues and reliability measurement for source finding."""

__version__ = "0.1.0"

__all__ = ["catalog", "detections", "kde", "label_map", "reliability", "relpar"]