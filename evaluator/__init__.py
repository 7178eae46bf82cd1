"""Vendor evaluation core: vendor pipeline, evaluator scoring and consensus."""

__version__ = "0.1.0"
