"""Bilingual (French / N'Ko) reader for popular-science articles."""

__all__ = ["config", "models", "transform", "localization", "discovery", "renderer"]
