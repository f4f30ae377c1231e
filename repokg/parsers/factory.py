"""
Factory module for language analyzers.
"""
import os
from typing import Dict, List, Optional, Type, Union

from repokg.config import AnalysisConfig
from repokg.core.entities import LanguageType
from repokg.core.errors import UnsupportedLanguageError

from .base_analyzer import LanguageAnalyzer
from .python_analyzer import PythonAnalyzer
from .typescript_analyzer import JAVASCRIPT_EXTENSIONS, TypeScriptAnalyzer


class AnalyzerFactory:
    """
    Registry of analyzer classes keyed by language tag.
    """

    _analyzers: Dict[LanguageType, Type[LanguageAnalyzer]] = {
        LanguageType.TYPESCRIPT: TypeScriptAnalyzer,
        LanguageType.JAVASCRIPT: TypeScriptAnalyzer,
        LanguageType.PYTHON: PythonAnalyzer,
    }

    @classmethod
    def _coerce(cls, language: Union[str, LanguageType]) -> LanguageType:
        if isinstance(language, LanguageType):
            return language
        try:
            return LanguageType(str(language).lower())
        except ValueError:
            raise UnsupportedLanguageError(str(language)) from None

    @classmethod
    def get_analyzer_class(cls, language: Union[str, LanguageType]) -> Type[LanguageAnalyzer]:
        tag = cls._coerce(language)
        if tag not in cls._analyzers:
            raise UnsupportedLanguageError(tag.value)
        return cls._analyzers[tag]

    @classmethod
    def create_analyzer(cls, language: Union[str, LanguageType],
                        config: Optional[AnalysisConfig] = None) -> LanguageAnalyzer:
        """
        Create a fresh analyzer for a language.

        Args:
            language: Language tag, e.g. ``typescript``
            config: Optional analysis configuration handed to the analyzer

        Returns:
            A new analyzer instance; instances are never shared

        Raises:
            UnsupportedLanguageError: If no analyzer is registered for the tag
        """
        tag = cls._coerce(language)
        return cls.get_analyzer_class(tag)(tag, config)

    @classmethod
    def register(cls, language: LanguageType, analyzer_class: Type[LanguageAnalyzer]) -> None:
        cls._analyzers[language] = analyzer_class

    @classmethod
    def is_language_supported(cls, language: Union[str, LanguageType]) -> bool:
        try:
            cls.get_analyzer_class(language)
        except UnsupportedLanguageError:
            return False
        return True

    @classmethod
    def get_supported_languages(cls) -> List[str]:
        return [language.value for language in cls._analyzers]

    @classmethod
    def detect_language(cls, file_path: str) -> Optional[LanguageType]:
        """Language tag for a file based on its extension, or None if unsupported."""
        extension = os.path.splitext(file_path)[1].lower()
        if extension in PythonAnalyzer.file_extensions:
            return LanguageType.PYTHON
        if extension in TypeScriptAnalyzer.file_extensions:
            if extension in JAVASCRIPT_EXTENSIONS:
                return LanguageType.JAVASCRIPT
            return LanguageType.TYPESCRIPT
        return None
