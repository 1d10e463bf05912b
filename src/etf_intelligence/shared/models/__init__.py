"""Shared domain models."""

from etf_intelligence.shared.models.enums import AssetClass, TrailingWindow

__all__ = ["AssetClass", "TrailingWindow"]
