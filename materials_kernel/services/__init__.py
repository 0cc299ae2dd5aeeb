"""Kernel write services (flush, never commit)."""

from materials_kernel.services.alert_service import AlertService
from materials_kernel.services.base import BaseService

__all__ = ["AlertService", "BaseService"]
