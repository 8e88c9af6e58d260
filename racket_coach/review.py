"""
Session Review Builder

Pure functions turning a finished session into a read-only review:
a Markdown-style text for the screen and a short spoken summary for
the voice layer. Drill suggestions assume no equipment.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .issues import IssueType, SessionIssue


DRILLS: Dict[IssueType, str] = {
    IssueType.INSUFFICIENT_KNEE_BEND:
        "**Shadow swings with squat hold**: pause in ready position, check knee angle",
    IssueType.LATE_PREPARATION:
        "**Split-step timing drill**: turn your body before the ball bounces",
    IssueType.POOR_BALANCE:
        "**Single-leg balance holds**: 30 seconds each side between points",
    IssueType.TIGHT_SPACING:
        "**Extend and reach drill**: shadow swing reaching away from the body",
    IssueType.SLOW_RECOVERY:
        "**Recovery footwork**: side shuffle back to center after each swing",
    IssueType.LIMITED_ROTATION:
        "**Rotation drill**: face the side wall, turn shoulders past hips",
}

GENERIC_DRILLS = [
    "**General footwork**: ladder drills or cone touches",
    "**Shadow swings**: full motion without ball, focus on form",
    "**Ready position holds**: practice athletic stance",
]

NOT_ENOUGH_DATA = "Not enough reliable data to identify specific issues."


@dataclass(frozen=True)
class SessionReview:
    """Immutable snapshot of a finished session."""
    duration: float
    focus: str
    issues: List[SessionIssue] = field(default_factory=list)
    opponent_notes: List[str] = field(default_factory=list)
    cue_count: int = 0
    pose_success_rate: float = 0.0
    total_frames: int = 0

    @property
    def duration_formatted(self) -> str:
        minutes, seconds = divmod(int(self.duration), 60)
        return f"{minutes}:{seconds:02d}"

    @property
    def detection_rate_percent(self) -> int:
        return int(self.pose_success_rate * 100)

    @property
    def summary_text(self) -> str:
        lines = [
            "## Session Review",
            f"Duration: {self.duration_formatted} | Focus: {self.focus}",
            "",
        ]

        if not self.issues:
            lines.append("### Observations")
            lines.append(NOT_ENOUGH_DATA)
            lines.append(f"(Pose detection rate: {self.detection_rate_percent}%)")
        else:
            lines.append("### Issues Observed")
            for i, issue in enumerate(self.issues, start=1):
                conf = int(issue.average_confidence * 100)
                lines.append(
                    f"{i}. **{issue.display_name}**: {issue.severity.label} priority "
                    f"({conf}% confidence, seen {issue.occurrences} times)"
                )

        lines.append("")
        lines.append("### Suggested Drills")
        lines.extend(f"{i}. {drill}" for i, drill in enumerate(self.drills(), start=1))

        if self.opponent_notes:
            lines.append("")
            lines.append("### Tactical Notes")
            lines.extend(f"- {note}" for note in self.opponent_notes)

        return "\n".join(lines)

    @property
    def spoken_summary(self) -> str:
        parts = [
            f"Session complete. {self.duration_formatted} of {self.focus.lower()} practice."
        ]

        if not self.issues:
            parts.append("I didn't get enough clear visuals to identify specific issues.")
        else:
            parts.append(f"Main focus area: {self.issues[0].display_name.lower()}.")
            if len(self.issues) > 1:
                parts.append(f"Also work on {self.issues[1].display_name.lower()}.")

        if self.opponent_notes:
            parts.append(f"Tactical note: {self.opponent_notes[0]}")

        return " ".join(parts)

    def drills(self) -> List[str]:
        """One drill per issue, or a generic set when nothing stood out."""
        drills = [DRILLS[issue.kind] for issue in self.issues[:3]]
        return drills or list(GENERIC_DRILLS)

    def to_dict(self) -> Dict:
        return {
            "duration": round(self.duration, 1),
            "duration_formatted": self.duration_formatted,
            "focus": self.focus,
            "issues": [issue.to_dict() for issue in self.issues],
            "opponent_notes": list(self.opponent_notes),
            "drills": self.drills(),
            "cue_count": self.cue_count,
            "pose_success_rate": round(self.pose_success_rate, 3),
            "total_frames": self.total_frames,
        }


def build_review(
    duration: float,
    focus: str,
    issues: List[SessionIssue],
    opponent_notes: List[str],
    cue_count: int,
    pose_success_rate: float,
    total_frames: int,
) -> SessionReview:
    """Snapshot the inputs so later mutation can't leak into the review."""
    return SessionReview(
        duration=duration,
        focus=focus,
        issues=list(issues),
        opponent_notes=list(opponent_notes),
        cue_count=cue_count,
        pose_success_rate=pose_success_rate,
        total_frames=total_frames,
    )
