"""Gate evaluator: folds verdicts into one decision under a policy."""

from vgate.gate.config import CheckType
from vgate.gate.models import CheckVerdict, GateDecision, Policy, Severity


def evaluate(verdicts: list[CheckVerdict], policy: Policy) -> GateDecision:
    """Combine check verdicts into a GateDecision.

    Under BLOCK, any failed critical verdict blocks. Under WARN nothing
    blocks; the verdicts are still carried for reporting. All verdicts are
    kept, no matter how many fail.

    Args:
        verdicts: Verdicts in configured order
        policy: Block or warn

    Returns:
        GateDecision (same inputs always give the same decision)
    """
    has_critical_failure = any(v.is_blocking_failure for v in verdicts)
    allowed = not (policy == Policy.BLOCK and has_critical_failure)

    return GateDecision(
        allowed=allowed,
        verdicts=list(verdicts),
        summary=_summarize(verdicts, policy, allowed),
    )


def _summarize(verdicts: list[CheckVerdict], policy: Policy, allowed: bool) -> str:
    """One-line summary, e.g. ``4/6 checks passed; critical: all-passed; blocked``."""
    failed = [v for v in verdicts if not v.passed]
    critical = [v.check_name for v in failed if v.severity == Severity.CRITICAL]
    other = [v.check_name for v in failed if v.severity != Severity.CRITICAL]

    parts = [f"{len(verdicts) - len(failed)}/{len(verdicts)} checks passed"]
    if critical:
        parts.append(f"critical: {', '.join(critical)}")
    if other:
        parts.append(f"warnings: {', '.join(other)}")

    if allowed:
        parts.append("allowed (warn policy)" if critical and policy == Policy.WARN else "allowed")
    else:
        parts.append("blocked")

    summary = "; ".join(parts)
    if CheckType.PARSE_SUCCEEDED in critical:
        # Unparsed output must read as "cannot verify", not as a clean run
        summary = f"cannot verify: {summary}"
    return summary
