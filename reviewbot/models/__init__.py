from .review import (
    Category,
    ChangedFile,
    FileStatus,
    Finding,
    ReviewOutcome,
    ReviewRequest,
    Severity,
    file_extension,
)

__all__ = [
    "Category",
    "ChangedFile",
    "FileStatus",
    "Finding",
    "ReviewOutcome",
    "ReviewRequest",
    "Severity",
    "file_extension",
]
