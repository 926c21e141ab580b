"""
Merging per-file outcomes into a project report.

The merge is a pure function of its input set: files are ordered by path
and facts by source position, so the report does not depend on the order
in which workers finished.
"""

import logging
from typing import Iterable, List, Union

from archscan.analyzer.models import Diagnostic, FileAnalysis, ProjectReport

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when something that is not a file outcome reaches the aggregator."""

    pass


def aggregate(
    outcomes: Iterable[Union[FileAnalysis, Diagnostic]],
    skipped: Iterable[str] = (),
    cancelled: bool = False,
) -> ProjectReport:
    """
    Merge per-file results and file-level failures.

    Args:
        outcomes: FileAnalysis or Diagnostic per file, in any order
        skipped: Paths never analyzed (cancellation)
        cancelled: Whether the run was cancelled

    Returns:
        ProjectReport with files sorted by path and every diagnostic (file
        level and per file) sorted by file, line and stage

    Raises:
        AnalysisError: If an outcome is neither a FileAnalysis nor a Diagnostic
    """
    files: List[FileAnalysis] = []
    diagnostics: List[Diagnostic] = []
    for outcome in outcomes:
        if isinstance(outcome, FileAnalysis):
            outcome.sort_facts()
            files.append(outcome)
            diagnostics.extend(outcome.diagnostics)
        elif isinstance(outcome, Diagnostic):
            diagnostics.append(outcome)
        else:
            raise AnalysisError(f"Cannot aggregate object of type {type(outcome).__name__}")

    files.sort(key=lambda f: (f.file_path, f.content_hash))
    diagnostics.sort(key=Diagnostic.sort_key)

    logger.info(f"Aggregated {len(files)} files with {len(diagnostics)} diagnostics")
    return ProjectReport(
        files=files,
        diagnostics=diagnostics,
        skipped=sorted(set(skipped)),
        cancelled=cancelled,
    )
