"""Utility modules for the Baraza API."""

from src.utils.clock import Clock, ensure_aware, utc_now


__all__ = ["Clock", "ensure_aware", "utc_now"]
