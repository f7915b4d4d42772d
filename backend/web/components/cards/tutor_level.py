"""
TutorLevelCard component.

Shows a tutor's current level, default hourly rate and progress towards the
next level.
"""

from backend.profiles.tutor_levels import format_currency, progress_to_next

from ..base import Component


class TutorLevelCard(Component):
    def __init__(self, completed_classes: int):
        self.completed_classes = max(0, int(completed_classes or 0))

    def render(self) -> str:
        info = progress_to_next(self.completed_classes)
        current = info.current
        if info.next is None:
            next_html = '<p class="level-next">Top level reached</p>'
        else:
            plural = "class" if info.classes_needed == 1 else "classes"
            next_html = (
                f'<p class="level-next">{info.classes_needed} more {plural} to reach '
                f"{self.escape(info.next.name)} ({format_currency(info.next.default_hourly_rate)}/h)</p>"
            )
        percent = int(info.progress)
        return f"""
        <section class="card tutor-level-card" aria-labelledby="tutor-level-title">
            <h2 id="tutor-level-title" class="card-title">Level {current.level}: {self.escape(current.name)}</h2>
            <p class="level-description">{self.escape(current.description)}</p>
            <dl class="level-meta">
                <dt>Completed classes</dt><dd>{self.completed_classes}</dd>
                <dt>Default rate</dt><dd>{format_currency(current.default_hourly_rate)}/h</dd>
            </dl>
            <progress class="progress" max="100" value="{percent}" aria-label="Progress to next level">{percent}%</progress>
            {next_html}
        </section>
        """
