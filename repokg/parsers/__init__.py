"""
Syntax analyzers for different programming languages.
"""

from .base_analyzer import LanguageAnalyzer
from .complexity import ComplexityCalculator
from .factory import AnalyzerFactory
from .python_analyzer import PythonAnalyzer
from .typescript_analyzer import TypeScriptAnalyzer

__all__ = [
    "LanguageAnalyzer",
    "ComplexityCalculator",
    "AnalyzerFactory",
    "PythonAnalyzer",
    "TypeScriptAnalyzer",
]
