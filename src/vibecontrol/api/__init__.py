"""HTTP surface for VibeControl."""

from vibecontrol.api.server import create_app, run_server

__all__ = ["create_app", "run_server"]
