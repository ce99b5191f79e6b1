"""Scalp simulation backend (mask-driven hair restoration previews)."""

from __future__ import annotations

from .main import create_app

__all__ = ["create_app"]
