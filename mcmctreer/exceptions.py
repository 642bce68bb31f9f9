#!/usr/bin/env python3
"""
Exception hierarchy for mcmctreer.

Every error raised by the readers, the node resolver and the prior
estimator derives from MCMCTreeRError and carries a ``context`` dictionary
describing where it happened.
"""

from typing import Any, Dict, Optional


class MCMCTreeRError(Exception):
    """Base class for all mcmctreer errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context) if context else {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class InputLengthMismatch(MCMCTreeRError, ValueError):
    """Parallel per-clade inputs cannot be aligned to the number of clades."""

    def __init__(self, message: str, parameter: Optional[str] = None,
                 expected: Optional[int] = None, found: Optional[int] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.parameter = parameter
        if parameter is not None:
            self.context['parameter'] = parameter
        if expected is not None:
            self.context['expected'] = expected
        if found is not None:
            self.context['found'] = found


class ParseError(MCMCTreeRError, ValueError):
    """MCMCTree output text does not have the expected structure."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 position: Optional[int] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.file_path = file_path
        self.position = position
        if file_path is not None:
            self.context['file_path'] = str(file_path)
        if position is not None:
            self.context['position'] = position


class CladeLookupError(MCMCTreeRError, LookupError):
    """A set of tip names does not resolve to a single node of the tree."""

    def __init__(self, message: str, taxa=None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.taxa = sorted(taxa) if taxa is not None else None
        if self.taxa is not None:
            self.context['taxa'] = self.taxa


class ConfigurationError(MCMCTreeRError):
    """Configuration file could not be loaded or validated."""

    def __init__(self, message: str, config_file: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.config_file = config_file
        if config_file is not None:
            self.context['config_file'] = str(config_file)
