from __future__ import annotations


class AnalysisError(RuntimeError):
    def __init__(self, message: str, *, code: str = "analysis_failed"):
        super().__init__(message)
        self.code = code


class SourceUnavailableError(AnalysisError):
    """The remote profile page could not be fetched or refused the request."""

    def __init__(self, message: str):
        super().__init__(message, code="source_unavailable")


class InsufficientContentError(AnalysisError):
    """Sanitized text is too short to be worth analysing."""

    def __init__(self, message: str):
        super().__init__(message, code="insufficient_content")


class ProviderError(AnalysisError):
    def __init__(self, message: str):
        super().__init__(message, code="provider_error")


class StageParseError(AnalysisError):
    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} stage returned unparsable output: {message}", code="stage_parse_error")
        self.stage = stage


class AnalysisTimeoutError(AnalysisError):
    def __init__(self, message: str):
        super().__init__(message, code="timeout")


class AnalysisCancelledError(AnalysisError):
    def __init__(self, message: str = "Analysis was cancelled before completion."):
        super().__init__(message, code="cancelled")
