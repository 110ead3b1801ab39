"""
Integration tests for rendering context - tests real LaTeX compilation.
"""

import asyncio
import os
import shutil

import pytest

from livetex.contexts.rendering.compiler import FailureReason, LatexCompiler, compile_file
from livetex.utils.pdf_processing import is_readable_pdf, page_count

# Check if pdflatex is available
PDFLATEX_AVAILABLE = shutil.which("pdflatex") is not None
skip_if_no_pdflatex = pytest.mark.skipif(
    not PDFLATEX_AVAILABLE,
    reason="pdflatex not installed - install TeX Live, MiKTeX, or MacTeX"
)

MINIMAL_DOCUMENT = r"""\documentclass{article}
\begin{document}
Hello, $E = mc^2$.
\end{document}
"""

BROKEN_DOCUMENT = r"""\documentclass{article}
\begin{document}
\undefinedcommand
\end{document}
"""

EMPTY_DOCUMENT = r"""\documentclass{article}
\begin{document}
\end{document}
"""


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_compile_minimal_document(tmp_path):
    """A valid document compiles to a readable one-page PDF and leaves no scratch files."""
    compiler = LatexCompiler(scratch_root=tmp_path / "scratch")

    outcome = await compiler.compile(MINIMAL_DOCUMENT)

    assert outcome.ok, f"Compilation failed with errors: {getattr(outcome, 'errors', None)}"
    assert is_readable_pdf(outcome.artifact)
    assert page_count(outcome.artifact) == 1
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_compile_error_is_reported(tmp_path):
    """An undefined command fails with the engine's diagnostics and no scratch residue."""
    compiler = LatexCompiler(scratch_root=tmp_path / "scratch")

    outcome = await compiler.compile(BROKEN_DOCUMENT)

    assert not outcome.ok
    assert outcome.reason is FailureReason.COMPILATION_ERROR
    assert "Undefined control sequence" in outcome.diagnostic_text
    assert any("Undefined control sequence" in error for error in outcome.errors)
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_empty_document_has_no_output(tmp_path):
    """pdflatex exits cleanly for an empty body but writes no PDF."""
    compiler = LatexCompiler(scratch_root=tmp_path / "scratch")

    outcome = await compiler.compile(EMPTY_DOCUMENT)

    assert not outcome.ok
    assert outcome.reason is FailureReason.OUTPUT_MISSING
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_concurrent_compiles_are_isolated(tmp_path):
    """Concurrent requests each get their own scratch directory and output."""
    compiler = LatexCompiler(scratch_root=tmp_path / "scratch")
    sources = [MINIMAL_DOCUMENT.replace("Hello", f"Hello {i}") for i in range(3)]

    outcomes = await asyncio.gather(*(compiler.compile(source) for source in sources))

    assert all(outcome.ok for outcome in outcomes)
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_two_passes(tmp_path):
    """Multi-pass compilation resolves references."""
    source = r"""\documentclass{article}
\begin{document}
\section{Intro}\label{sec:intro}
See Section~\ref{sec:intro}.
\end{document}
"""
    outcome = await LatexCompiler(num_passes=2, scratch_root=tmp_path).compile(source)

    assert outcome.ok
    assert not any("undefined references" in w for w in outcome.warnings)


@pytest.mark.integration
@pytest.mark.latex
@skip_if_no_pdflatex
@pytest.mark.asyncio
async def test_compile_file_writes_pdf(tmp_path):
    """compile_file writes only the requested PDF next to the source."""
    tex_file = tmp_path / "notes.tex"
    tex_file.write_text(MINIMAL_DOCUMENT)

    outcome = await compile_file(tex_file, compiler=LatexCompiler(scratch_root=tmp_path / "scratch"))

    assert outcome.ok
    assert sorted(p.name for p in tmp_path.iterdir()) == ["notes.pdf", "notes.tex", "scratch"]
    assert is_readable_pdf((tmp_path / "notes.pdf").read_bytes())


@pytest.mark.integration
@pytest.mark.asyncio
async def test_missing_engine_is_launch_failure(tmp_path):
    """An engine that is not on PATH is a launch failure, and scratch is still cleaned."""
    compiler = LatexCompiler(engine="livetex-no-such-engine", scratch_root=tmp_path / "scratch")

    outcome = await compiler.compile(MINIMAL_DOCUMENT)

    assert not outcome.ok
    assert outcome.reason is FailureReason.PROCESS_LAUNCH_FAILURE
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_timeout_is_launch_failure(tmp_path):
    """An engine exceeding the wall-clock limit is killed and reported as a launch failure."""
    sleeper = tmp_path / "slow-engine"
    sleeper.write_text("#!/bin/sh\nexec sleep 30\n")
    sleeper.chmod(0o755)
    compiler = LatexCompiler(engine=str(sleeper), timeout_s=0.2, scratch_root=tmp_path / "scratch")

    outcome = await asyncio.wait_for(compiler.compile(MINIMAL_DOCUMENT), timeout=10)

    assert not outcome.ok
    assert outcome.reason is FailureReason.PROCESS_LAUNCH_FAILURE
    assert "time limit" in outcome.diagnostic_text
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_compile_file_missing_source(tmp_path):
    outcome = await compile_file(tmp_path / "absent.tex")

    assert not outcome.ok
    assert "not found" in outcome.diagnostic_text


def fake_engine(tmp_path, body):
    """Write an executable shell script standing in for the TeX engine."""
    engine = tmp_path / "fake-engine"
    engine.write_text(f"#!/bin/sh\n{body}\n")
    engine.chmod(0o755)
    return str(engine)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_engine_error_exit_is_compilation_error(tmp_path):
    """A non-zero exit is a compilation error carrying the engine's error stream."""
    engine = fake_engine(tmp_path, "echo boom >&2; exit 1")
    compiler = LatexCompiler(engine=engine, scratch_root=tmp_path / "scratch")

    outcome = await compiler.compile(MINIMAL_DOCUMENT)

    assert not outcome.ok
    assert outcome.reason is FailureReason.COMPILATION_ERROR
    assert "boom" in outcome.diagnostic_text
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_clean_exit_without_pdf_is_output_missing(tmp_path):
    engine = fake_engine(tmp_path, "exit 0")
    compiler = LatexCompiler(engine=engine, scratch_root=tmp_path / "scratch")

    outcome = await compiler.compile(MINIMAL_DOCUMENT)

    assert not outcome.ok
    assert outcome.reason is FailureReason.OUTPUT_MISSING
    assert list((tmp_path / "scratch").iterdir()) == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_fake_engine_output_is_returned(tmp_path):
    engine = fake_engine(tmp_path, 'printf "%%PDF-fake" > main.pdf')
    compiler = LatexCompiler(engine=engine, scratch_root=tmp_path / "scratch")

    outcome = await compiler.compile(MINIMAL_DOCUMENT)

    assert outcome.ok
    assert outcome.artifact == b"%PDF-fake"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cancelled_compile_kills_engine_and_cleans_scratch(tmp_path):
    """Cancelling a compile kills the engine and still removes the scratch directory."""
    pid_file = tmp_path / "engine.pid"
    engine = fake_engine(tmp_path, f"echo $$ > {pid_file}\nexec sleep 30")
    scratch = tmp_path / "scratch"
    compiler = LatexCompiler(engine=engine, timeout_s=None, scratch_root=scratch)

    task = asyncio.ensure_future(compiler.compile(MINIMAL_DOCUMENT))
    for _ in range(200):
        if pid_file.exists() and pid_file.read_text().strip():
            break
        await asyncio.sleep(0.01)
    pid = int(pid_file.read_text())

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(task, timeout=10)

    assert list(scratch.iterdir()) == []
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
