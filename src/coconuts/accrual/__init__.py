"""Accrual subsystem — balance computation and transfer validation."""

from coconuts.accrual.engine import AccrualEngine

__all__ = ["AccrualEngine"]
