"""
Settings resolution for LiveTeX.

Layers, later overriding earlier:
    1. LiveTexSettings dataclass defaults
    2. YAML config file (LIVETEX_CONFIG env variable or explicit path)
    3. Environment variables (.env is loaded via python-dotenv)
    4. Explicit overrides passed by the caller

Examples:
    >>> settings = load_settings()
    >>> settings.debounce_s
    0.75

    >>> settings = load_settings(overrides={"debounce_ms": 250, "num_passes": 2})
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

load_dotenv()


@dataclass
class LiveTexSettings:
    """
    Resolved runtime settings.

    Attributes:
        latex_compiler: TeX engine executable (name on PATH or absolute path)
        num_passes: Engine passes per compile (2 resolves cross-references)
        compile_timeout_s: Wall-clock limit per compile, None for no limit
        debounce_ms: Quiet period after the last edit before compiling
        scratch_dir: Parent for per-request scratch directories (None: system temp)
        documents_path: JSON file backing the document store
        logs_path: Directory for loguru session logs
        session_events_file: JSON Lines event log, None to disable
        show_superseded_results: Display results that land after a newer edit cycle began
        api_host: Bind address for the HTTP endpoint
        api_port: Bind port for the HTTP endpoint
    """

    latex_compiler: str = "pdflatex"
    num_passes: int = 1
    compile_timeout_s: Optional[float] = 60.0
    debounce_ms: int = 750
    scratch_dir: Optional[str] = None
    documents_path: str = "outs/documents.json"
    logs_path: str = "outs/logs"
    session_events_file: Optional[str] = None
    show_superseded_results: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000.0


# Environment variable -> settings field
ENV_VARIABLES = {
    "LATEX_COMPILER": "latex_compiler",
    "LIVETEX_NUM_PASSES": "num_passes",
    "LIVETEX_COMPILE_TIMEOUT_S": "compile_timeout_s",
    "LIVETEX_DEBOUNCE_MS": "debounce_ms",
    "LIVETEX_SCRATCH_DIR": "scratch_dir",
    "LIVETEX_DOCUMENTS_PATH": "documents_path",
    "LOGS_PATH": "logs_path",
    "SESSION_EVENTS_FILE": "session_events_file",
    "LIVETEX_SHOW_SUPERSEDED": "show_superseded_results",
    "LIVETEX_API_HOST": "api_host",
    "LIVETEX_API_PORT": "api_port",
}


def _env_overrides() -> Dict[str, Any]:
    """Collect settings from environment variables that are set and non-empty."""
    overrides = {}
    for env_name, field_name in ENV_VARIABLES.items():
        value = os.getenv(env_name)
        if value is None or value == "":
            continue
        if field_name == "show_superseded_results":
            overrides[field_name] = value.lower() in ("1", "true", "yes")
        elif field_name == "compile_timeout_s" and value.lower() in ("none", "0"):
            overrides[field_name] = None
        else:
            # OmegaConf converts numeric strings against the schema
            overrides[field_name] = value
    return overrides


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> LiveTexSettings:
    """
    Resolve settings from defaults, YAML, environment and explicit overrides.

    Args:
        config_path: YAML file (defaults to LIVETEX_CONFIG env variable, if set)
        overrides: Field values that win over every other layer

    Returns:
        LiveTexSettings instance

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        omegaconf.errors.ValidationError: If a value does not match the field type
    """
    schema = OmegaConf.structured(LiveTexSettings)
    layers = [schema]

    if config_path is None and os.getenv("LIVETEX_CONFIG"):
        config_path = Path(os.getenv("LIVETEX_CONFIG"))

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        layers.append(OmegaConf.load(config_path))

    layers.append(OmegaConf.create(_env_overrides()))

    if overrides:
        layers.append(OmegaConf.create(overrides))

    merged = OmegaConf.merge(*layers)
    return OmegaConf.to_object(merged)
