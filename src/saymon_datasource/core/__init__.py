"""
Infrastructure shared by the datasource and the CLI: structured logging and
template variable interpolation.
"""

from .logging import StructuredLogFormatter, configure_logging, get_logger
from .templating import FORMATTERS, TemplateService, VariableTemplateSrv

__all__ = [
    "FORMATTERS",
    "StructuredLogFormatter",
    "TemplateService",
    "VariableTemplateSrv",
    "configure_logging",
    "get_logger",
]
