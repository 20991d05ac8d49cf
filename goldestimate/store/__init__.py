"""Estimation state container."""

from .estimation_store import EstimationStore

__all__ = ["EstimationStore"]
