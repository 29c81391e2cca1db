"""Scan stage: feed files from a local directory tree through the rule engine."""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from fnmatch import fnmatch
from pathlib import Path
from typing import Iterator, Optional

from versionsift.models import ExecutionOptions, FileScanResult, ScanReport
from versionsift.pipeline.rules import RuleEngine

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {".git", ".hg", ".svn", "__pycache__", ".tox", ".venv", "node_modules"}


def matches_pattern(file_path: Path, pattern: str, base_path: Path) -> bool:
    """Check if a file matches an ignore pattern.

    The pattern is matched against the path relative to ``base_path`` and
    against the bare filename.
    """
    try:
        rel_path = file_path.relative_to(base_path).as_posix()
    except ValueError:
        return False

    pattern = pattern.lstrip("/")
    if fnmatch(rel_path, pattern) or fnmatch(file_path.name, pattern):
        return True

    # "dir/**" style patterns ignore everything below dir
    if pattern.endswith("/**"):
        prefix = pattern[: -len("/**")]
        return rel_path == prefix or rel_path.startswith(prefix + "/")
    return False


def should_ignore_file(file_path: Path, root: Path, ignore_patterns: list[str]) -> bool:
    """Check if a file matches any ignore pattern."""
    for pattern in ignore_patterns:
        if matches_pattern(file_path, pattern, root):
            logger.debug("File %s matched ignore pattern: %s", file_path, pattern)
            return True
    return False


def collect_files(root: Path, ignore_patterns: Optional[list[str]] = None) -> Iterator[Path]:
    """Yield the files below root in a stable order, skipping VCS and cache directories.

    Args:
        root: Directory (or single file) to walk
        ignore_patterns: Glob patterns of files to skip

    Yields:
        Paths of files to consider
    """
    ignore_patterns = ignore_patterns or []
    if root.is_file():
        yield root
        return

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRECTORIES)
        for filename in sorted(filenames):
            file_path = Path(dirpath) / filename
            if not should_ignore_file(file_path, root, ignore_patterns):
                yield file_path


def _scan_file(
    file_path: Path,
    engine: RuleEngine,
    options: ExecutionOptions,
    cancel: threading.Event,
    max_file_size: int,
) -> FileScanResult:
    """Read a candidate file and execute the rules against it."""
    size = file_path.stat().st_size
    if size > max_file_size:
        raise ValueError(f"file size {size} exceeds scan limit of {max_file_size} bytes")

    content = file_path.read_bytes()
    execution = engine.execute(content, file_path.name, file_path.as_posix(), options, cancel)
    return FileScanResult(path=file_path, execution=execution)


def _start_deadline(cancel: threading.Event, timeout: Optional[float]) -> Optional[threading.Timer]:
    if timeout is None:
        return None
    timer = threading.Timer(timeout, cancel.set)
    timer.daemon = True
    timer.start()
    return timer


def scan_path(
    root: Path,
    engine: RuleEngine,
    options: Optional[ExecutionOptions] = None,
    *,
    workers: int = 4,
    timeout: Optional[float] = None,
    ignore_patterns: Optional[list[str]] = None,
    max_file_size: int = 1024 * 1024,
    cancel: Optional[threading.Event] = None,
) -> ScanReport:
    """Run the rule engine over every candidate file below root.

    Only files with at least one matching rule are read. Files are
    processed concurrently and share one cancellation event, set either by
    the caller or by the timeout.

    Args:
        root: Directory or file to scan
        engine: Rule engine to execute
        options: Execution options applied to every file
        workers: Number of files processed concurrently
        timeout: Seconds after which remaining rule evaluation is cancelled
        ignore_patterns: Glob patterns of files to skip
        max_file_size: Files larger than this many bytes are reported as failed
        cancel: Caller-owned cancellation event

    Returns:
        ScanReport with per-file results sorted by path
    """
    options = options or ExecutionOptions.default()
    cancel = cancel if cancel is not None else threading.Event()
    report = ScanReport(root=root)

    candidates: list[Path] = []
    for file_path in collect_files(root, ignore_patterns):
        report.files_seen += 1
        if engine.select_rules(file_path.name, file_path.as_posix(), options):
            candidates.append(file_path)
    logger.info("Found %d candidate file(s) out of %d", len(candidates), report.files_seen)

    timer = _start_deadline(cancel, timeout)
    try:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                path: pool.submit(_scan_file, path, engine, options, cancel, max_file_size)
                for path in candidates
            }
            for path, future in futures.items():
                try:
                    report.files.append(future.result())
                except (OSError, ValueError) as e:
                    logger.warning("Failed to scan %s: %s", path, e)
                    report.failed_files[path] = str(e)
    finally:
        if timer is not None:
            timer.cancel()

    report.files.sort(key=lambda f: f.path)
    return report
