"""Application package for the quiz and learning-progress backend.

This package exposes the store, services and HTTP layer used by the
FastAPI application. It is intentionally lightweight; individual
modules contain the concrete implementations and documentation.
"""
