"""
LiveTeX - continuously refreshed LaTeX preview

Turns a stream of editor keystrokes into a correctly sequenced stream of
compiles, keeping exactly one rendered artifact live at a time.

Architecture:
- Rendering Context: drives the external TeX engine in isolated scratch directories
- Session Context: debounce/sequencing state machine and artifact lifecycle
- Preview Context: compiler-free text/math segmentation and inline rendering
- Documents Context: best-effort document persistence
"""

__version__ = "0.1.0"
