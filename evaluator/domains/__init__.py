"""Evaluation domains: the vendor pipeline and the scoring engine."""
