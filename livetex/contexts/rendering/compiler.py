"""
LaTeX Compilation Module

Drives an external TeX engine to turn source text into PDF bytes.

Every request runs in its own uniquely named scratch directory, so any number
of compiles may be in flight at once without sharing files. The directory and
everything the engine writes into it (.aux, .log, partial PDFs) is removed on
every exit path: success, failure, timeout, and cancellation.
"""

import asyncio
import re
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar, List, Optional, Tuple, Union

from livetex.config import LiveTexSettings
from livetex.contexts.rendering.exceptions import (
    CompilationError,
    CompilerServiceError,
    OutputMissing,
    ProcessLaunchFailure,
)
from livetex.contexts.rendering.logger import (
    _log_debug,
    _log_info,
    log_compilation_result,
    log_compilation_start,
)

# Base name of the source file written into each scratch directory
JOB_NAME = "main"

# Keep diagnostics readable when an engine dumps pages of output
MAX_DIAGNOSTIC_CHARS = 8000


class FailureReason(Enum):
    """Why a compile request produced no artifact."""

    PROCESS_LAUNCH_FAILURE = "process_launch_failure"
    COMPILATION_ERROR = "compilation_error"
    OUTPUT_MISSING = "output_missing"


@dataclass(frozen=True)
class CompileSuccess:
    """Engine produced an artifact."""

    artifact: bytes
    warnings: List[str] = field(default_factory=list)

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class CompileFailure:
    """
    Engine produced no artifact.

    Attributes:
        reason: Failure category
        diagnostic_text: Raw error stream of the engine
        errors: Individual errors parsed from the engine log
    """

    reason: FailureReason
    diagnostic_text: str
    errors: List[str] = field(default_factory=list)

    ok: ClassVar[bool] = False

    @classmethod
    def from_error(cls, error: CompilerServiceError) -> "CompileFailure":
        if isinstance(error, ProcessLaunchFailure):
            reason = FailureReason.PROCESS_LAUNCH_FAILURE
        elif isinstance(error, OutputMissing):
            reason = FailureReason.OUTPUT_MISSING
        else:
            reason = FailureReason.COMPILATION_ERROR

        diagnostic_text = error.diagnostic_text or error.message
        errors = error.errors or [error.message]
        return cls(reason=reason, diagnostic_text=diagnostic_text, errors=list(errors))


CompileOutcome = Union[CompileSuccess, CompileFailure]


class CompilerService(ABC):
    """
    Turns source text into an artifact.

    Implementations must be safe to invoke concurrently and must never raise
    for per-request failures: those come back as CompileFailure.
    """

    @abstractmethod
    async def compile(self, source: str) -> CompileOutcome:
        """Compile source and return the outcome."""


def _parse_latex_log(log_content: str) -> Tuple[List[str], List[str]]:
    """
    Parse LaTeX log file for errors and warnings.

    Args:
        log_content: Content of the .log file

    Returns:
        Tuple of (errors, warnings)
    """
    errors = []
    warnings = []

    # -file-line-error style: "./main.tex:12: Undefined control sequence."
    file_line_pattern = re.compile(r"^\S+\.tex:(\d+): (.+)$", re.MULTILINE)
    for match in file_line_pattern.finditer(log_content):
        errors.append(f"line {match.group(1)}: {match.group(2).strip()}")

    # Classic style: "! Error message"
    error_pattern = re.compile(r"^! (.+)$", re.MULTILINE)
    for match in error_pattern.finditer(log_content):
        message = match.group(1).strip()
        if not any(message in existing for existing in errors):
            errors.append(message)

    for pattern in [r"Emergency stop", r"File ended while scanning use of"]:
        match = re.search(rf"({pattern}.*?)$", log_content, re.MULTILINE)
        if match and not any(match.group(1) in existing for existing in errors):
            errors.append(match.group(1))

    warning_patterns = [
        r"LaTeX Warning: (.+)",
        r"Package \w+ Warning: (.+)",
        r"Overfull \\hbox \((.+)\)",
        r"Underfull \\hbox \((.+)\)",
    ]
    for pattern in warning_patterns:
        for match in re.finditer(pattern, log_content, re.MULTILINE):
            warnings.append(match.group(1).strip())

    return errors, warnings


def _read_log(scratch_dir: Path) -> str:
    log_file = scratch_dir / f"{JOB_NAME}.log"
    if not log_file.exists():
        return ""
    # pdflatex writes log files in latin-1 (font metadata contains non-UTF-8)
    return log_file.read_text(encoding="latin-1")


def _decode(stream: Optional[bytes]) -> str:
    if not stream:
        return ""
    return stream.decode("utf-8", errors="replace")


def _tail(text: str) -> str:
    return text[-MAX_DIAGNOSTIC_CHARS:]


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """Kill the engine if it is still running and reap it."""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


class LatexCompiler(CompilerService):
    """
    CompilerService backed by a TeX engine on PATH (pdflatex, xelatex, lualatex).

    Args:
        engine: Engine executable
        num_passes: Passes per compile (2 resolves cross-references)
        timeout_s: Wall-clock limit per compile (None: wait indefinitely)
        scratch_root: Parent for scratch directories (None: system temp)
        verbose: Log warnings and raw engine output on success too
    """

    def __init__(
        self,
        engine: str = "pdflatex",
        num_passes: int = 1,
        timeout_s: Optional[float] = 60.0,
        scratch_root: Optional[Path] = None,
        verbose: bool = False,
    ):
        if num_passes < 1:
            raise ValueError(f"num_passes must be at least 1, got: {num_passes}")
        self.engine = engine
        self.num_passes = num_passes
        self.timeout_s = timeout_s
        self.scratch_root = Path(scratch_root) if scratch_root else None
        self.verbose = verbose

    @classmethod
    def from_settings(cls, settings: LiveTexSettings, verbose: bool = False) -> "LatexCompiler":
        return cls(
            engine=settings.latex_compiler,
            num_passes=settings.num_passes,
            timeout_s=settings.compile_timeout_s,
            scratch_root=Path(settings.scratch_dir) if settings.scratch_dir else None,
            verbose=verbose,
        )

    async def compile(self, source: str) -> CompileOutcome:
        start_time = time.perf_counter()
        stdout = ""
        try:
            artifact, warnings, stdout = await self._compile_in_scratch(source)
        except CompilerServiceError as e:
            outcome = CompileFailure.from_error(e)
        else:
            outcome = CompileSuccess(artifact=artifact, warnings=warnings)

        log_compilation_result(
            outcome,
            elapsed_time=time.perf_counter() - start_time,
            verbose=self.verbose,
            stdout=stdout,
            stderr="" if outcome.ok else outcome.diagnostic_text,
        )
        return outcome

    def _make_scratch(self) -> tempfile.TemporaryDirectory:
        try:
            if self.scratch_root is not None:
                self.scratch_root.mkdir(parents=True, exist_ok=True)
            return tempfile.TemporaryDirectory(prefix="livetex-", dir=self.scratch_root)
        except OSError as e:
            raise ProcessLaunchFailure(
                f"Could not create scratch directory: {e}", diagnostic_text=str(e)
            ) from e

    async def _compile_in_scratch(self, source: str) -> Tuple[bytes, List[str], str]:
        with self._make_scratch() as scratch:
            scratch_dir = Path(scratch)
            tex_file = scratch_dir / f"{JOB_NAME}.tex"
            try:
                tex_file.write_text(source, encoding="utf-8")
            except UnicodeEncodeError as e:
                raise CompilationError(
                    "Source contains characters that cannot be encoded as UTF-8",
                    diagnostic_text=str(e),
                ) from e
            except OSError as e:
                raise ProcessLaunchFailure(
                    f"Could not write source to scratch directory: {e}", diagnostic_text=str(e)
                ) from e

            log_compilation_start(self.engine, scratch_dir, self.num_passes, len(source))

            all_stdout = []
            for pass_number in range(1, self.num_passes + 1):
                returncode, stdout, stderr = await self._run_engine(scratch_dir, tex_file.name)
                all_stdout.append(stdout)

                if returncode != 0:
                    errors, _ = _parse_latex_log(_read_log(scratch_dir))
                    raise CompilationError(
                        f"{self.engine} exited with status {returncode} on pass {pass_number}",
                        diagnostic_text=_tail(stderr.strip() or stdout),
                        errors=errors,
                    )

            combined_stdout = "\n".join(all_stdout)
            errors, warnings = _parse_latex_log(_read_log(scratch_dir))

            pdf_path = scratch_dir / f"{JOB_NAME}.pdf"
            if not pdf_path.exists():
                raise OutputMissing(
                    "PDF file was not generated",
                    diagnostic_text=_tail(combined_stdout),
                    errors=errors,
                )

            artifact = pdf_path.read_bytes()
            _log_debug(f"Removing scratch directory {scratch_dir}")

        return artifact, warnings, combined_stdout

    async def _run_engine(self, cwd: Path, tex_name: str) -> Tuple[int, str, str]:
        cmd = [
            self.engine,
            "-interaction=nonstopmode",
            "-halt-on-error",
            "-file-line-error",
            tex_name,
        ]

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessLaunchFailure(
                f"Could not launch {self.engine}: {e}", diagnostic_text=str(e)
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            await _terminate(proc)
            raise ProcessLaunchFailure(
                f"{self.engine} timed out after {self.timeout_s}s",
                diagnostic_text=f"Compilation exceeded the {self.timeout_s}s time limit",
            )
        except asyncio.CancelledError:
            await _terminate(proc)
            raise

        return proc.returncode, _decode(stdout), _decode(stderr)


async def compile_file(
    tex_file: Path,
    output_pdf: Optional[Path] = None,
    compiler: Optional[CompilerService] = None,
) -> CompileOutcome:
    """
    Compile a .tex file and optionally write the PDF next to it (or to output_pdf).

    The source file's directory is never written to except for output_pdf.

    Args:
        tex_file: Path to the .tex file
        output_pdf: Destination for the PDF (default: tex_file with .pdf suffix)
        compiler: Service to use (default: LatexCompiler with default settings)

    Returns:
        CompileOutcome of the compile
    """
    tex_file = Path(tex_file)
    if not tex_file.exists():
        return CompileFailure(
            reason=FailureReason.COMPILATION_ERROR,
            diagnostic_text=f"TeX file not found: {tex_file}",
            errors=[f"TeX file not found: {tex_file}"],
        )

    compiler = compiler or LatexCompiler()
    outcome = await compiler.compile(tex_file.read_text(encoding="utf-8"))

    if outcome.ok:
        output_pdf = Path(output_pdf) if output_pdf else tex_file.with_suffix(".pdf")
        output_pdf.parent.mkdir(parents=True, exist_ok=True)
        output_pdf.write_bytes(outcome.artifact)
        _log_info(f"PDF saved to: {output_pdf}")

    return outcome
