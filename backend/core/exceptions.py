"""
Core exceptions for PolicyWise backend

Custom exception hierarchy for consistent error handling.
Every error is scoped to a single user action; none is fatal to the process.
"""
from typing import Any, Optional


class PolicyWiseException(Exception):
    """Base exception for all PolicyWise errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        detail: Optional[str] = None,
        recovery: Optional[str] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.detail = detail
        self.recovery = recovery
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        if self.recovery:
            result["recovery"] = self.recovery
        return result


class MissingInputError(PolicyWiseException):
    """Neither document text nor a document file was supplied."""

    def __init__(self, message: str = "Please provide a document to analyze.", detail: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="missing_input",
            status_code=400,
            detail=detail or "Either documentText or documentDataUri must be provided.",
            recovery="Paste the document text or upload a PDF and try again.",
        )


class InvalidFileTypeError(PolicyWiseException):
    """A file with an unsupported MIME type was selected."""

    def __init__(self, content_type: str):
        super().__init__(
            message="Invalid file type. Please upload a PDF file.",
            error_code="invalid_file_type",
            status_code=400,
            detail=f"Received {content_type or 'unknown'}; only application/pdf is accepted",
            recovery="Please convert your document to PDF format and try again.",
        )
        self.content_type = content_type


class FileValidationError(PolicyWiseException):
    """Uploaded file is empty, too large or otherwise unusable."""

    def __init__(self, message: str, recovery: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="file_validation_error",
            status_code=400,
            detail="File does not meet requirements",
            recovery=recovery or "Please ensure your file is a valid PDF and meets the size requirements.",
        )


class InvalidDataUriError(PolicyWiseException):
    """Document payload is not a valid base64 data URI."""

    def __init__(self, detail: str):
        super().__init__(
            message="The document could not be decoded.",
            error_code="invalid_data_uri",
            status_code=400,
            detail=detail,
            recovery="Expected format: data:<mimetype>;base64,<encoded_data>",
        )


class NotAPolicyError(PolicyWiseException):
    """The model classified the document as something other than a policy."""

    def __init__(self, analysis: Any = None):
        super().__init__(
            message="The provided document does not appear to be an insurance policy. Please upload a valid policy.",
            error_code="not_a_policy",
            status_code=422,
            detail="Document was not recognized as an insurance policy",
            recovery="Upload the policy wording or schedule issued by your insurer.",
        )
        # Placeholder AnalysisResult (isPolicy=False) returned by the model
        self.analysis = analysis

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.analysis is not None:
            result["analysis"] = self.analysis.model_dump(by_alias=True, mode="json")
        return result


class UpstreamError(PolicyWiseException):
    """The model provider or document store call failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="upstream_error",
            status_code=502,
            detail=detail,
            recovery="Please try again in a moment.",
        )


class AuthenticationError(PolicyWiseException):
    """Missing or invalid identity token."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            message="Authentication required",
            error_code="unauthenticated",
            status_code=401,
            detail=detail,
            recovery="Please sign in again.",
        )


class AnalysisNotFound(PolicyWiseException):
    """Saved analysis does not exist for this user."""

    def __init__(self, analysis_id: str):
        super().__init__(
            message="Saved analysis not found",
            error_code="analysis_not_found",
            status_code=404,
            detail=f"Analysis {analysis_id} does not exist",
        )
        self.analysis_id = analysis_id


class ConfigurationError(PolicyWiseException):
    """Configuration or API key missing."""

    def __init__(self, message: str, recovery: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="configuration_error",
            status_code=500,
            detail="Server configuration error",
            recovery=recovery or "Please contact support if this error persists.",
        )
