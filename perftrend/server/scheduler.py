"""Commit scheduler: which commit should be built and tested next?

Every commit gets an integer score from independent weighted factors, and the
whole log is returned ranked by descending score so the caller can fall
through to the next candidate when one cannot be built. Ranking is stable:
equal scores keep log order.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from perftrend.core.types import LogEntry, ScoreFactors, ToDoEntry

logger = logging.getLogger(__name__)

MAX_TRAILING_ZEROS = 30

# results[commit_hash][test_id] = value
ResultMatrix = Mapping[str, Mapping[str, int]]


def trailing_zeros(index: int) -> int:
    count = 0
    for bit in range(MAX_TRAILING_ZEROS):
        if index & (1 << bit):
            break
        count += 1
    return count


class CommitScheduler:
    """Scores a commit log. Holds no state between calls."""

    def __init__(self, factors: Optional[ScoreFactors] = None):
        self.factors = factors or ScoreFactors()

    def get_todo(
        self,
        commits: Sequence[LogEntry],
        cache_state: Mapping[str, bool],
        results: ResultMatrix,
        tests: Sequence,
    ) -> List[ToDoEntry]:
        """Rank ``commits`` (oldest first) by descending priority.

        ``tests`` only needs ``id`` and ``exact`` attributes.
        """
        factors = self.factors
        n = len(commits)
        scores = [0] * n
        reasons: List[Dict[str, int]] = [{} for _ in range(n)]

        def award(index: int, points: int, reason: str) -> None:
            scores[index] += points
            reasons[index][reason] = reasons[index].get(reason, 0) + points

        for i, commit in enumerate(commits):
            if i:
                award(i, factors.base2 * trailing_zeros(i), "base2")
            if cache_state.get(commit.hash, False):
                award(i, factors.cached, "cached")
            position = i / (n - 1) if n > 1 else 1.0
            award(i, int(factors.recent_max * position ** factors.recent_exp), "recent")

        if tests:
            self._award_test_coverage(commits, results, tests, scores, award)

        order = sorted(range(n), key=lambda i: -scores[i])
        return [ToDoEntry(commits[i], scores[i], reasons[i]) for i in order]

    def _award_test_coverage(self, commits, results, tests, scores, award) -> None:
        factors = self.factors
        n = len(commits)

        untested_points = [0] * n
        tested = [[commit.hash in results and test.id in results[commit.hash] for test in tests] for commit in commits]
        for i in range(n):
            untested_points[i] = factors.untested * tested[i].count(False)

        # Untested coverage counts towards the score that picks the best
        # commit inside a gap; it is normalized over the catalog.
        base_scores = [scores[i] + untested_points[i] // len(tests) for i in range(n)]

        diff_points = [0] * n
        for t, test in enumerate(tests):
            last_value: Optional[int] = None
            best_index: Optional[int] = None

            for i, commit in enumerate(commits):
                if not tested[i][t]:
                    if best_index is None or base_scores[i] > base_scores[best_index]:
                        best_index = i
                    continue

                value = results[commit.hash][test.id]
                if value == 0:
                    # Failed sample: recorded, but neither a gap boundary nor a candidate.
                    continue
                if last_value is not None and best_index is not None and value != last_value:
                    v0, v1 = min(value, last_value), max(value, last_value)
                    points = int(factors.diff_max * (v1 - v0) / v1)
                    if test.exact:
                        points *= factors.diff_exact
                    diff_points[best_index] += points

                last_value = value
                best_index = None

        # Both factors share one pool, divided once by the catalog size.
        for i in range(n):
            pool = (untested_points[i] + diff_points[i]) // len(tests)
            untested = untested_points[i] // len(tests)
            award(i, untested, "untested")
            if diff_points[i]:
                award(i, pool - untested, "diff")


def format_todo(entries: Sequence[ToDoEntry]) -> str:
    """Score breakdown, one commit per line, in rank order."""
    lines = []
    for entry in entries:
        when = entry.commit.time.strftime("%Y-%m-%d %H:%M:%S")
        lines.append(f"{entry.commit.hash} {when} {entry.score:5d} {entry.reasons}")
    return "\n".join(lines) + "\n"
