"""
Structured logging package for DudeChat.

All imports should use explicit paths like
'from dudechat.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' to avoid
namespace conflicts with Python's standard library logging module.
"""

__all__ = []
