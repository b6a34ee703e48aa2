from __future__ import annotations

from ..models.classification import Classification, Verdict

"""Result line rendering for the test-station contract.

The station software parses exactly one stdout line per invocation:

    GS                          golden sample
    OK <tested>                 admitted on total test count alone
    OK <failures> (<tested>)    admitted after the panel failure check
    NK <tested>                 rejected on total test count alone
    NK <failures> (<tested>)    rejected by the panel failure check
    ER <message>                program error
"""


def _counts(c: Classification) -> str:
    if c.failures is None:
        return f"{c.tested}"
    return f"{c.failures} ({c.tested})"


def render_result_line(classification: Classification) -> str:
    """Render a Classification as the one-line station response.

    Examples:
        >>> render_result_line(Classification.admitted(tested=4, failures=2))
        'OK 2 (4)'
        >>> render_result_line(Classification.rejected(tested=6))
        'NK 6'
    """
    verdict = classification.verdict
    if verdict is Verdict.GOLDEN_SAMPLE:
        return verdict.value
    if verdict is Verdict.ERROR:
        # 1 行契約: メッセージ内の改行は空白へ
        message = " ".join((classification.message or "unknown error").split())
        return f"{verdict.value} {message}"
    return f"{verdict.value} {_counts(classification)}"
