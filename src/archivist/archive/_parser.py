"""Checklist parser for spec tasks documents.

This module turns the text of a ``tasks.md`` document into structured
tasks. It performs no I/O; callers read the document and hand over its
text. The format it understands:

    - [x] 1. Create the project skeleton
      - _Requirements: 1.1, 2.3_
    - [ ] 2. Wire the database layer
      - _Dependencies: 1_
    - [~] 2.1 Write migrations

Example:
    >>> from archivist.archive import TaskCompletionParser
    >>> result = TaskCompletionParser().parse("- [x] Done\\n- [ ] Not yet")
    >>> (result.total_tasks, result.completed_tasks, result.is_complete)
    (2, 1, False)
"""

import re
from dataclasses import replace

from ._models import FormatValidation, Task, TaskParseResult, TaskState

__all__ = ["TaskCompletionParser"]

# Indent, list marker ("-", "*", "+" or "1."), checkbox, text
_TASK_PATTERN = re.compile(r"^(?P<indent>\s*)(?:[-*+]|\d+\.)\s+\[(?P<mark>.?)\]\s+(?P<text>\S.*)$")

# A short bracket after a list marker that is not a markdown link
_TASK_LIKE_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+\[(?:[^\]]{0,3}\](?!\()|[^\]]{0,3}$)")

# A checkbox with no list marker in front of it
_BARE_CHECKBOX_PATTERN = re.compile(r"^\s*\[.?\]\s+\S")

# Leading explicit numbering such as "2." or "2.1" in the task text
_NUMBER_PATTERN = re.compile(r"^(?P<number>\d+\.(?:\d+\.?)*)\s+(?P<rest>\S.*)$")

# "_Key: value_" with an optional list bullet in front
_METADATA_PATTERN = re.compile(r"^\s*(?:[-*+]\s+)?_(?P<key>[A-Za-z]+):\s*(?P<value>.*?)_\s*$")

_FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")

_DEPENDENCY_PATTERN = re.compile(r"(\d+)")

_INDENT_WIDTH = 2


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _task_state(mark: str) -> TaskState:
    if mark in {"x", "X"}:
        return TaskState.COMPLETE
    if not mark.strip():
        return TaskState.INCOMPLETE
    return TaskState.IN_PROGRESS


def _indent_depth(indent: str) -> int:
    return len(indent.expandtabs(_INDENT_WIDTH * 2)) // _INDENT_WIDTH


class TaskCompletionParser:
    """Parse tasks documents into tasks and completion counts.

    The parser is stateless and safe to share between callers.
    """

    __slots__ = ()

    def parse(self, text: str) -> TaskParseResult:
        """Parse a tasks document.

        Task lines are recognized in any list style. ``[x]``/``[X]`` marks a
        task complete, an empty checkbox marks it incomplete and any other
        single character marks it in progress. Lines that open a checkbox
        but don't close a valid one are reported in ``malformed_lines``.
        Indented ``_Key: value_`` lines attach metadata to the task above
        them. Fenced code blocks are skipped entirely.

        Args:
            text: The full document text.

        Returns:
            The parsed tasks with malformed lines and validation warnings.
        """
        tasks: list[Task] = []
        malformed: list[str] = []
        in_fence = False

        for line_number, line in enumerate(text.splitlines(), start=1):
            if _FENCE_PATTERN.match(line):
                in_fence = not in_fence
                continue
            if in_fence or not line.strip():
                continue

            match = _TASK_PATTERN.match(line)
            if match is not None:
                tasks.append(self._build_task(match, ordinal=len(tasks) + 1, line_number=line_number))
                continue

            if _TASK_LIKE_PATTERN.match(line):
                malformed.append(line.strip())
                continue

            if tasks and line[:1].isspace():
                tasks[-1] = self._apply_metadata(tasks[-1], line)

        return TaskParseResult(
            tasks=tuple(tasks),
            malformed_lines=tuple(malformed),
            warnings=tuple(self._dependency_warnings(tasks)),
        )

    def is_complete(self, text: str) -> bool:
        """Return True if the document has tasks and all of them are complete."""
        return self.parse(text).is_complete

    def validate_format(self, text: str) -> FormatValidation:
        """Check a tasks document for formatting problems.

        Args:
            text: The full document text.

        Returns:
            A FormatValidation listing every problem found. The document is
            valid when the list is empty.
        """
        if not text.strip():
            return FormatValidation(is_valid=False, issues=("Tasks document is empty",))

        result = self.parse(text)
        issues = [f"Malformed task line: {line}" for line in result.malformed_lines]

        in_fence = False
        for line_number, line in enumerate(text.splitlines(), start=1):
            if _FENCE_PATTERN.match(line):
                in_fence = not in_fence
                continue
            if not in_fence and _BARE_CHECKBOX_PATTERN.match(line):
                issues.append(f"Line {line_number}: checkbox without list marker")

        if result.total_tasks == 0 and not result.malformed_lines:
            issues.append("No task checkboxes found")

        return FormatValidation(is_valid=not issues, issues=tuple(issues))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _build_task(self, match: re.Match[str], *, ordinal: int, line_number: int) -> Task:
        description = match.group("text").strip()
        number: str | None = None
        numbered = _NUMBER_PATTERN.match(description)
        if numbered is not None:
            number = numbered.group("number").rstrip(".")
            description = numbered.group("rest").strip()

        return Task(
            ordinal=ordinal,
            state=_task_state(match.group("mark")),
            description=description,
            line_number=line_number,
            number=number,
            depth=_indent_depth(match.group("indent")),
        )

    def _apply_metadata(self, task: Task, line: str) -> Task:
        match = _METADATA_PATTERN.match(line)
        if match is None:
            return task

        key = match.group("key").lower()
        value = match.group("value").strip()
        if key == "requirements":
            return replace(task, requirements=task.requirements + _split_list(value))
        if key == "dependencies":
            found = tuple(int(ref) for ref in _DEPENDENCY_PATTERN.findall(value))
            return replace(task, dependencies=task.dependencies + found)
        if key == "priority":
            return replace(task, priority=value or None)
        if key == "assignee":
            return replace(task, assignee=value or None)
        if key == "tags":
            return replace(task, tags=task.tags + _split_list(value))
        return task

    def _dependency_warnings(self, tasks: list[Task]) -> list[str]:
        known = {task.ordinal for task in tasks}
        return [
            f"Task {task.ordinal} depends on unknown task {ref}"
            for task in tasks
            for ref in task.dependencies
            if ref not in known
        ]
