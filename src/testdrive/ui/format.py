# format.py
from __future__ import annotations

from ..report import FAILED, PASSED, SKIPPED, Summary

STEP_GLYPHS = {
    PASSED: "✅",
    FAILED: "❌",
    SKIPPED: "⏭",
}


def step_glyph(status: str) -> str:
    return STEP_GLYPHS.get(status, "?")


def format_duration(seconds: float) -> str:
    """Short human duration: 0s, 412ms, 3.25s, 2m5.1s."""
    if seconds <= 0:
        return "0s"
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    if seconds < 60:
        return _trim(f"{seconds:.3f}") + "s"
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes)}m{_trim(f'{rest:.1f}')}s"


def _trim(number: str) -> str:
    if "." in number:
        number = number.rstrip("0").rstrip(".")
    return number or "0"


def indent(text: str, pad: str) -> str:
    text = text.strip()
    if not text:
        return ""
    return "\n".join(pad + line for line in text.split("\n"))


def summary_line(summary: Summary) -> str:
    return (
        f"SUMMARY: {summary.passed} passed, {summary.failed} failed, "
        f"{summary.skipped} skipped ({format_duration(summary.duration)})"
    )


def decorate_name(name: str, path: str) -> str:
    if not name or name == path:
        return path
    return f"{name} ({path})"
