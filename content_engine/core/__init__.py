"""
Core modules for the content engine.

This package contains rate limiting, cost tracking, quality assessment
and the generation pipeline.
"""
