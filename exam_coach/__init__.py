"""Exam Coach - adaptive team exams driven by a hosted language model."""

__version__ = "0.1.0"
