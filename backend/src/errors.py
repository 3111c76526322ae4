"""Exception types raised by the grounding subsystem."""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from models.coverage import CoverageVerdict


class ConfigurationError(ValueError):
    """Invalid or incomplete configuration. Raised before any work begins."""


class ExtractionError(RuntimeError):
    """Text could not be extracted from a single source document."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class EmbeddingServiceError(RuntimeError):
    """The embedding service returned an error or an unusable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EmbeddingBatchError(EmbeddingServiceError):
    """A batch failed, aborting the whole ingestion run."""

    def __init__(
        self,
        message: str,
        batch_number: int,
        total_batches: int,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.batch_number = batch_number
        self.total_batches = total_batches


class IngestionError(RuntimeError):
    """An ingestion run cannot produce a complete index."""


class IndexNotFoundError(FileNotFoundError):
    """The persisted index (or one half of it) does not exist."""


class IndexCorruptionError(ValueError):
    """The persisted index is not structurally intact."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        super().__init__(message)
        self.path = path
        self.line_number = line_number


class InsufficientCoverageError(Exception):
    """Generation refused: the corpus does not substantiate the request.

    Carries the coverage verdict so the boundary can render a structured
    rejection instead of falling back to ungrounded generation.
    """

    status_code = 422

    def __init__(self, verdict: "CoverageVerdict"):
        super().__init__(
            "Insufficient handbook coverage: " + ", ".join(verdict.missing)
        )
        self.verdict = verdict

    def to_response(self) -> dict[str, Any]:
        return {
            "error": "Insufficient handbook coverage",
            "missing": list(self.verdict.missing),
            "coverageDetail": self.verdict.coverage_detail.model_dump(by_alias=True),
        }
