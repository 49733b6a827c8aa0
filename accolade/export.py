"""Period report export formatters.

Provides JSON and Markdown export functions for period reports.
"""

from __future__ import annotations

from accolade.schemas.report import PeriodReport


def export_json(report: PeriodReport) -> str:
    """Export a period report as a formatted JSON string.

    Returns:
        Pretty-printed JSON string of the full report.
    """
    return report.model_dump_json(indent=2)


def export_markdown(report: PeriodReport) -> str:
    """Export a period report as a human-readable Markdown document.

    Sections: period metadata, voting progress, finalists, leaderboard,
    and the recorded winner.

    Returns:
        Markdown-formatted string.
    """
    period = report.period
    lines: list[str] = []

    lines.append(f"# Best Employee of the Quarter: {period.id}")
    lines.append("")

    lines.append("## Period")
    lines.append("")
    lines.append(f"- **Dates:** {period.start_date.isoformat()} to {period.end_date.isoformat()}")
    status = "Completed" if period.is_completed else ("Active" if period.is_active else "Inactive")
    lines.append(f"- **Status:** {status}")
    lines.append(f"- **Candidates:** {len(report.pool)}")
    lines.append(f"- **Generated:** {report.generated_at.isoformat()}")
    lines.append("")

    lines.append("## Voting")
    lines.append("")
    voting = report.voting
    lines.append(f"- **Completed:** {voting.completed_count} / {voting.required_count}")
    lines.append(f"- **Quorum:** {'met' if voting.quorum_met else 'pending'}")
    lines.append("")

    if report.shortlist:
        lines.append("## Finalists")
        lines.append("")
        for i, cid in enumerate(report.shortlist, start=1):
            lines.append(f"{i}. {report.display_name(cid)}")
        lines.append("")

    if report.ratings:
        lines.append(
            f"**Raters finished:** {report.ratings.completed_count}"
            f" / {report.ratings.required_count}"
        )
        lines.append("")

    if report.leaderboard:
        lines.append("## Leaderboard")
        lines.append("")
        lines.append("| Rank | Candidate | Total | Raters | Percent |")
        lines.append("|------|-----------|-------|--------|---------|")
        for rank, score in enumerate(report.leaderboard, start=1):
            lines.append(
                f"| {rank} | {report.display_name(score.candidate_id)} "
                f"| {score.total_score} | {score.num_raters} "
                f"| {score.score_percent:.1f}% |"
            )
        lines.append("")

    if report.winner:
        lines.append("## Winner")
        lines.append("")
        lines.append(
            f"**{report.display_name(report.winner.winner_id)}** with "
            f"{report.winner.total_score} points from {report.winner.num_raters} raters"
        )
        if report.winner.is_tie:
            tied = ", ".join(report.display_name(c) for c in report.winner.tied_candidates)
            lines.append("")
            lines.append(f"Tied on total score: {tied}")
        lines.append("")

    return "\n".join(lines)
