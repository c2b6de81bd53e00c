"""Reporter: renders a GateDecision for humans or machines."""

from vgate.gate.models import CheckVerdict, GateDecision, ReportFormat, Severity

_PASS_GLYPH = "✓"
_FAIL_GLYPHS = {
    Severity.CRITICAL: "✗",
    Severity.WARNING: "⚠",
    Severity.INFO: "ℹ",
}


def glyph(verdict: CheckVerdict) -> str:
    """Status glyph for a verdict.

    Passing info verdicts (notes) keep the info glyph.
    """
    if verdict.severity == Severity.INFO:
        return _FAIL_GLYPHS[Severity.INFO]
    if verdict.passed:
        return _PASS_GLYPH
    return _FAIL_GLYPHS[verdict.severity]


def render(decision: GateDecision, format: ReportFormat | str = ReportFormat.TEXT) -> str:
    """Render a decision as JSON or plain text.

    The JSON form is the decision serialized verbatim: ``allowed``,
    ``verdicts`` (``check_name``, ``passed``, ``severity``, ``message``),
    and ``summary``.

    Raises:
        ValueError: If format is unknown
    """
    fmt = ReportFormat(format)
    if fmt == ReportFormat.JSON:
        return decision.model_dump_json(indent=2)

    lines = [f"{glyph(v)} {v.check_name}: {v.message}" for v in decision.verdicts]
    lines.append("")
    lines.append(decision.summary)
    lines.append("ALLOWED" if decision.allowed else "BLOCKED")
    return "\n".join(lines)


def exit_code(decision: GateDecision) -> int:
    """0 if the decision allows the action, 1 if it blocks."""
    return 0 if decision.allowed else 1
