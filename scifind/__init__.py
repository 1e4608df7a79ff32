"""Structured errors, error classification, retry and circuit-breaker policies, and data models for scientific paper search."""

__version__ = "0.1.0"