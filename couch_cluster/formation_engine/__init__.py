"""
Formation Engine - Central runner for cluster formation
"""
from .formation_logger import FormationLogger
from .error_handler import ErrorHandler
from .formation_engine import FormationEngine

__all__ = [
    'FormationEngine',
    'FormationLogger',
    'ErrorHandler',
]
