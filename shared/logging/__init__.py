"""Structured logging module using structlog."""

from .structured_logger import add_app_context, bind_context, configure_logging, unbind_context

__all__ = ["add_app_context", "bind_context", "configure_logging", "unbind_context"]
