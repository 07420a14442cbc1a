"""
Exceptions raised inside the analysis core.

None of these escape a public entry point: they are caught at the sub-check or
entry-point boundary and turned into degraded results.
"""


class FraudAnalysisError(Exception):
    """Base class for analysis failures."""


class UnreadableInputError(FraudAnalysisError):
    """Image or document bytes could not be decoded."""


class OcrUnavailableError(FraudAnalysisError):
    """No OCR engine is installed or configured."""
