"""
MIME Mail Reader Contract Index
===============================

AUTHORITY: This file is the SINGLE authoritative entrypoint for all
reader contracts. Import from here, not from individual contract files.
"""

from contracts.mime_reader_contract import (
    # Test Case Index
    TEST_CASES,
    AuthFailedError,
    BiosecretDeniedError,
    BiosecretNotFoundError,
    ConnectionFailedError,
    ConnectionStatus,
    ContentReadError,
    DepthExceededError,
    ExtractContract,
    ExtractedMessage,
    ExtractionFailure,
    FolderNotFoundError,
    HeaderWriteError,
    # Contracts (Protocols)
    HeaderWriter,
    # Error Types
    MimeReaderError,
    NormalizeContract,
    NotInitializedError,
    # Domain Types
    PartSummary,
    ReaderContract,
    StructuralError,
)

__all__ = [
    # Domain Types
    "PartSummary",
    "ExtractedMessage",
    "ExtractionFailure",
    "ConnectionStatus",
    # Error Types
    "MimeReaderError",
    "StructuralError",
    "HeaderWriteError",
    "ContentReadError",
    "DepthExceededError",
    "NotInitializedError",
    "ConnectionFailedError",
    "AuthFailedError",
    "FolderNotFoundError",
    "BiosecretDeniedError",
    "BiosecretNotFoundError",
    # Contracts
    "HeaderWriter",
    "NormalizeContract",
    "ExtractContract",
    "ReaderContract",
    # Test Traceability
    "TEST_CASES",
    # Functions
    "audit_contract_coverage",
]


def audit_contract_coverage() -> dict:
    """
    Audit which contract clauses have test coverage.

    Returns dict with:
    - covered: clauses with at least one test
    - uncovered: clauses with no tests
    - test_count: total tests defined
    """
    covered_clauses = set()
    for test_name, test_info in TEST_CASES.items():
        for clause in test_info.get("enforces", []):
            covered_clauses.add(clause)

    all_clauses = set()

    # Normalizer clauses
    all_clauses.update(
        [
            "PRE-NORMALIZE-01",
            "PRE-NORMALIZE-02",
            "POST-NORMALIZE-01",
            "POST-NORMALIZE-02",
            "INV-NORMALIZE-01",
            "INV-NORMALIZE-02",
            "ERRORS: HEADER_WRITE",
        ]
    )

    # Extraction clauses
    all_clauses.update(
        [
            "PRE-EXTRACT-01",
            "POST-EXTRACT-01",
            "POST-EXTRACT-02",
            "POST-EXTRACT-03",
            "POST-EXTRACT-04",
            "POST-EXTRACT-05",
            "POST-EXTRACT-06",
            "INV-EXTRACT-01",
            "INV-EXTRACT-02",
            "INV-EXTRACT-03",
            "INV-EXTRACT-04",
            "INV-EXTRACT-05",
            "ERRORS: STRUCTURAL",
            "ERRORS: CONTENT_READ",
            "ERRORS: DEPTH_EXCEEDED",
        ]
    )

    # Reader clauses
    all_clauses.update(
        [
            "PRE-READER-01",
            "POST-READER-01",
            "POST-READER-02",
            "POST-READER-03",
            "POST-READER-04",
            "POST-READER-05",
            "INV-READER-01",
            "INV-READER-02",
            "INV-READER-03",
            "ERRORS: NOT_INITIALIZED",
            "ERRORS: CONNECTION_FAILED",
            "ERRORS: AUTH_FAILED",
            "ERRORS: FOLDER_NOT_FOUND",
        ]
    )

    uncovered = all_clauses - covered_clauses

    return {
        "covered": sorted(covered_clauses),
        "uncovered": sorted(uncovered),
        "test_count": len(TEST_CASES),
        "coverage_pct": round(len(covered_clauses) / len(all_clauses) * 100, 1),
    }
