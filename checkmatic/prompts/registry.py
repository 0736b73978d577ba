from __future__ import annotations

from pathlib import Path
from string import Template

ROOT = Path(__file__).resolve().parent

SYNTHESIS_PLACEHOLDERS = ("current_date", "text", "zero_shot", "sarcasm", "political_bias")


def load(namespace: str, name: str) -> str:
    """Load a prompt file from the prompts directory.

    Args:
        namespace: Subdirectory name (e.g., 'synthesis')
        name: File name (e.g., 'v1.md')

    Returns:
        Prompt text as string

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    p = ROOT / namespace / name
    if not p.exists():
        raise FileNotFoundError(f"Prompt not found: {p}")
    return p.read_text(encoding="utf-8").strip()


def get_synthesis_template(version: str = "v1", override: str | None = None) -> Template:
    """Get the synthesis prompt as a ``string.Template``.

    Placeholders: ``$current_date``, ``$text``, ``$zero_shot``, ``$sarcasm``
    and ``$political_bias``. ``override`` replaces the bundled file.
    """
    return Template(override if override else load("synthesis", f"{version}.md"))


def get_transcription_prompt(version: str = "v1") -> str:
    """Get the image transcription instruction."""
    return load("transcription", f"{version}.md")
