"""Property-based tests for the tasks document parser."""

from hypothesis import given, strategies as st

from archivist.archive import TaskCompletionParser, TaskState

# =============================================================================
# Strategies
# =============================================================================

marks = st.sampled_from(["x", "X", " ", "", "~", "-", "/"])

task_text = st.text(
    alphabet=st.characters(whitelist_categories=["L", "N"], whitelist_characters=" -_"),
    min_size=1,
    max_size=30,
).filter(lambda x: x.strip() and not x.startswith((" ", "_")))

bullets = st.sampled_from(["-", "*", "+", "1."])

noise = st.sampled_from(["# Heading", "Some prose about the plan.", "", "---", "> quoted"])


@st.composite
def task_documents(draw: st.DrawFn) -> tuple[str, list[str]]:
    """Build a tasks document and the checkbox marks it contains, in order."""
    lines: list[str] = []
    used: list[str] = []
    for _ in range(draw(st.integers(min_value=0, max_value=15))):
        if draw(st.booleans()):
            lines.append(draw(noise))
        mark = draw(marks)
        indent = "  " * draw(st.integers(min_value=0, max_value=3))
        lines.append(f"{indent}{draw(bullets)} [{mark}] {draw(task_text)}")
        used.append(mark)
    return "\n".join(lines), used


def _expected_state(mark: str) -> TaskState:
    if mark in {"x", "X"}:
        return TaskState.COMPLETE
    if not mark.strip():
        return TaskState.INCOMPLETE
    return TaskState.IN_PROGRESS


# =============================================================================
# Count Properties
# =============================================================================


@given(document=task_documents())
def test_counts_match_checkbox_marks(document: tuple[str, list[str]]) -> None:
    """Property: one task per checkbox line, complete iff marked x or X."""
    text, used = document

    result = TaskCompletionParser().parse(text)

    assert result.total_tasks == len(used)
    assert result.completed_tasks == sum(1 for mark in used if mark in {"x", "X"})
    assert [task.state for task in result.tasks] == [_expected_state(mark) for mark in used]


@given(document=task_documents())
def test_completed_never_exceeds_total(document: tuple[str, list[str]]) -> None:
    """Property: 0 <= completed <= total, and complete implies at least one task."""
    result = TaskCompletionParser().parse(document[0])

    assert 0 <= result.completed_tasks <= result.total_tasks
    if result.is_complete:
        assert result.total_tasks > 0
        assert result.completed_tasks == result.total_tasks


@given(document=task_documents())
def test_is_complete_agrees_with_parse(document: tuple[str, list[str]]) -> None:
    parser = TaskCompletionParser()

    assert parser.is_complete(document[0]) == parser.parse(document[0]).is_complete


@given(document=task_documents())
def test_fenced_tasks_are_ignored(document: tuple[str, list[str]]) -> None:
    """Property: wrapping checkboxes in a code fence hides them from the count."""
    text, used = document
    fenced = f"{text}\n```markdown\n- [ ] Example task\n- [x] Another\n```\n"

    assert TaskCompletionParser().parse(fenced).total_tasks == len(used)


@given(text=st.text(max_size=300))
def test_parse_never_raises(text: str) -> None:
    result = TaskCompletionParser().parse(text)

    assert result.total_tasks >= 0
