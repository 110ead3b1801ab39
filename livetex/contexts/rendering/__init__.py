"""
Rendering Context

Responsibilities:
- Compiles LaTeX source to PDF bytes with an external TeX engine
- Isolates every request in its own scratch directory and removes it on every exit path
- Parses engine logs for errors and warnings
- Converts engine failures into CompileFailure outcomes

Owns: TeX engine invocation, scratch storage, diagnostics
Never: Decides which result is shown (that belongs to the session context)
"""

from livetex.contexts.rendering.compiler import (
    CompileFailure,
    CompileOutcome,
    CompilerService,
    CompileSuccess,
    FailureReason,
    LatexCompiler,
    compile_file,
)

__all__ = [
    "CompileFailure",
    "CompileOutcome",
    "CompilerService",
    "CompileSuccess",
    "FailureReason",
    "LatexCompiler",
    "compile_file",
]
