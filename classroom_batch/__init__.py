"""Batch CSV ingestion and class roster reconciliation for a student-management backend."""

__version__ = "0.1.0"
