from __future__ import annotations

from .app.server import app, controller

__all__ = ["app", "controller"]
