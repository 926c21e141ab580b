"""
Main analyzer orchestrator.

CodeAnalyzer runs the per-file extraction pipeline over one syntax tree and
fans whole projects out over a thread pool. A stage that fails is reported
as a diagnostic on that file; the remaining stages still run.
"""

import fnmatch
import hashlib
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path, PurePath
from typing import Dict, Iterable, List, Optional, Union

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from archscan.analyzer.aggregator import aggregate
from archscan.analyzer.extractors import (
    BaseExtractor,
    CallGraphResolver,
    ClientCallDetector,
    EndpointExtractor,
    FileContext,
    ImportExtractor,
    ProtocolExtractor,
    SymbolTableBuilder,
    TestCaseDetector,
)
from archscan.analyzer.models import Diagnostic, FileAnalysis, ProjectReport
from archscan.analyzer.parser import ParseError, parse_python_file
from archscan.analyzer.tree_sitter_adapter import node_line, tree_root, walk_tree
from archscan.config import DEFAULT_CONFIG, AnalyzerConfig

logger = logging.getLogger(__name__)

FileOutcome = Union[FileAnalysis, Diagnostic]

# Structural diagnostics per file beyond which the rest are summarized
MAX_SYNTAX_DIAGNOSTICS = 20


def module_name_for(file_path: Union[str, PurePath]) -> str:
    """Dotted module name derived from a (relative) file path.

    ``pkg/sub/mod.py`` -> ``pkg.sub.mod``; ``pkg/__init__.py`` -> ``pkg``.
    """
    path = PurePath(file_path)
    parts = [part for part in path.with_suffix("").parts if part not in ("", ".", "..", "/")]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts) if parts else path.stem


def discover_python_files(
    root_path: Path,
    exclude_patterns: Iterable[str] = (),
) -> List[Path]:
    """
    Find Python files under a directory.

    Args:
        root_path: Directory to search (or a single .py file)
        exclude_patterns: Glob patterns matched against each path component

    Returns:
        Sorted list of file paths
    """
    root_path = Path(root_path)
    if root_path.is_file():
        return [root_path]

    patterns = list(exclude_patterns)
    python_files = []
    for py_file in root_path.rglob("*.py"):
        relative_parts = py_file.relative_to(root_path).parts
        if any(fnmatch.fnmatch(part, pattern) for part in relative_parts for pattern in patterns):
            continue
        python_files.append(py_file)
    return sorted(python_files)


class CodeAnalyzer:
    """Runs the extraction pipeline over files and projects.

    Extractors hold configuration only, so one analyzer can be shared by
    every worker thread.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.import_extractor = ImportExtractor(self.config)
        self.symbol_builder = SymbolTableBuilder(self.config)
        self.call_resolver = CallGraphResolver(self.config)
        self.endpoint_extractor = EndpointExtractor(self.config)
        self.client_call_detector = ClientCallDetector(self.config)
        self.protocol_extractor = ProtocolExtractor(self.config)
        self.test_detector = TestCaseDetector(self.config)

    @property
    def pipeline(self) -> List[BaseExtractor]:
        """Extractors in dependency order."""
        return [
            self.import_extractor,
            self.symbol_builder,
            self.call_resolver,
            self.endpoint_extractor,
            self.client_call_detector,
            self.protocol_extractor,
            self.test_detector,
        ]

    @staticmethod
    def compute_hash(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()

    def analyze_file(self, file_path: Union[str, PurePath], tree) -> FileOutcome:
        """
        Analyze one parsed file.

        Args:
            file_path: Path recorded on every fact (not read from disk)
            tree: Tree-sitter tree or root node

        Returns:
            FileAnalysis, or a Diagnostic when the tree is unusable
        """
        file_path = str(file_path)
        root = tree_root(tree)
        if root is None or getattr(root, "type", None) != "module":
            logger.warning(f"Skipping {file_path}: not a Python module tree")
            return Diagnostic(file=file_path, message="syntax tree is not a Python module", stage="parse")

        result = FileAnalysis(
            file_path=file_path,
            module_name=module_name_for(file_path),
            content_hash=self.compute_hash(root.text or b""),
        )
        self._record_syntax_errors(root, result)

        context = FileContext(path=file_path, root=root)
        self._run_extractions(context, result)
        result.sort_facts()
        return result

    def _run_extractions(self, context: FileContext, result: FileAnalysis) -> None:
        for extractor in self.pipeline:
            try:
                extractor.extract(context, result)
            except Exception as e:
                logger.error(f"{extractor.stage} extraction failed for {result.file_path}: {e}")
                result.diagnostics.append(
                    Diagnostic(
                        file=result.file_path,
                        message=f"{extractor.stage} stage failed: {e}",
                        stage=extractor.stage,
                    )
                )

    def _record_syntax_errors(self, root, result: FileAnalysis) -> None:
        if not root.has_error:
            return
        count = 0
        for node in walk_tree(root, prune=lambda n: n.type == "ERROR"):
            if node.type != "ERROR" and not node.is_missing:
                continue
            count += 1
            if count > MAX_SYNTAX_DIAGNOSTICS:
                continue
            message = f"missing '{node.type}'" if node.is_missing else "syntax error"
            result.diagnostics.append(
                Diagnostic(file=result.file_path, message=message, line=node_line(node), stage="parse")
            )
        if count > MAX_SYNTAX_DIAGNOSTICS:
            result.diagnostics.append(
                Diagnostic(
                    file=result.file_path,
                    message=f"{count - MAX_SYNTAX_DIAGNOSTICS} more syntax errors not reported",
                    stage="parse",
                )
            )
        logger.debug(f"{result.file_path}: {count} syntax error regions")

    def analyze_path(
        self,
        file_path: Path,
        display_path: Optional[str] = None,
    ) -> FileOutcome:
        """Read, parse and analyze one file from disk.

        Args:
            file_path: File to read
            display_path: Path recorded in the results (defaults to file_path)
        """
        display_path = display_path or str(file_path)
        try:
            tree, _ = parse_python_file(file_path)
        except ParseError as e:
            logger.warning(f"Could not parse {file_path}: {e}")
            return Diagnostic(file=display_path, message=str(e), stage="parse")
        return self.analyze_file(display_path, tree)

    def analyze_paths(
        self,
        paths: Iterable[Path],
        root_path: Optional[Path] = None,
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        show_progress: bool = False,
    ) -> ProjectReport:
        """
        Analyze many files concurrently and merge the results.

        Files are independent; each worker only touches its own FileAnalysis
        and results are merged on the calling thread.

        Args:
            paths: Files to analyze
            root_path: When given, recorded paths are relative to it
            max_workers: Thread count (default: config, then os.cpu_count())
            cancel_event: Set to stop picking up new files; files not
                started are listed in ``ProjectReport.skipped``. A
                KeyboardInterrupt sets it too.
            show_progress: Display a rich progress bar

        Returns:
            Deterministically ordered ProjectReport
        """
        if cancel_event is None:
            cancel_event = threading.Event()

        jobs = {}
        for path in paths:
            path = Path(path)
            jobs[self._display_path(path, root_path)] = path

        outcomes: List[FileOutcome] = []
        skipped: List[str] = []
        future_to_file: Dict[Future, str] = {}
        collected = set()

        def work(display_path: str, path: Path) -> Optional[FileOutcome]:
            if cancel_event.is_set():
                return None
            return self.analyze_path(path, display_path)

        def collect(future: Future) -> None:
            display_path = future_to_file[future]
            try:
                outcome = future.result()
            except Exception as e:
                logger.error(f"Failed to analyze {display_path}: {e}")
                outcome = Diagnostic(file=display_path, message=f"analysis failed: {e}", stage="pipeline")
            collected.add(future)
            if outcome is None:
                skipped.append(display_path)
            else:
                outcomes.append(outcome)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            disable=not show_progress,
        ) as progress:
            task = progress.add_task(f"Analyzing {len(jobs)} files...", total=len(jobs))
            executor = ThreadPoolExecutor(max_workers=max_workers or self.config.max_workers)
            try:
                for display_path, path in jobs.items():
                    future_to_file[executor.submit(work, display_path, path)] = display_path
                for future in as_completed(future_to_file):
                    collect(future)
                    progress.update(task, advance=1)
            except KeyboardInterrupt:
                logger.warning("Interrupted, waiting for running files to finish")
                cancel_event.set()
            finally:
                # Queued files are dropped; running ones finish
                executor.shutdown(wait=True, cancel_futures=True)

        for future, display_path in future_to_file.items():
            if future in collected:
                continue
            if future.cancelled() or isinstance(future.exception(), KeyboardInterrupt):
                skipped.append(display_path)
            else:
                collect(future)
        # Files never submitted before the interrupt
        submitted = set(future_to_file.values())
        skipped.extend(display_path for display_path in jobs if display_path not in submitted)

        cancelled = cancel_event.is_set()
        if cancelled:
            logger.info(f"Analysis cancelled, {len(skipped)} files skipped")
        return aggregate(outcomes, skipped=skipped, cancelled=cancelled)

    def analyze_directory(
        self,
        root_path: Path,
        exclude_patterns: Optional[Iterable[str]] = None,
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        show_progress: bool = False,
    ) -> ProjectReport:
        """Analyze every Python file under ``root_path``.

        Args:
            root_path: Project directory (or a single file)
            exclude_patterns: Path-component globs to skip (default: config)
            max_workers: Thread count
            cancel_event: Cooperative cancellation flag
            show_progress: Display a rich progress bar

        Returns:
            ProjectReport with paths relative to ``root_path``
        """
        root_path = Path(root_path)
        if exclude_patterns is None:
            exclude_patterns = self.config.exclude_patterns
        python_files = discover_python_files(root_path, exclude_patterns)
        if not python_files:
            logger.warning(f"No Python files found in {root_path}")

        base = root_path.parent if root_path.is_file() else root_path
        return self.analyze_paths(
            python_files,
            root_path=base,
            max_workers=max_workers,
            cancel_event=cancel_event,
            show_progress=show_progress,
        )

    @staticmethod
    def _display_path(path: Path, root_path: Optional[Path]) -> str:
        if root_path is not None:
            try:
                return path.relative_to(root_path).as_posix()
            except ValueError:
                pass
        return path.as_posix()
