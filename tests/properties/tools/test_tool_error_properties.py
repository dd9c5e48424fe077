from hypothesis import given, strategies as st

from dcmproc.tools import (
    MAX_ARGS_LENGTH,
    MAX_STDERR_LENGTH,
    create_tool_error,
    truncate,
)

tool_names = st.sampled_from(["dcmdump", "dcm2json", "dcmodify", "dcmsend"])


@given(value=st.text(max_size=400), max_length=st.integers(min_value=0, max_value=300))
def test_truncate_bounds_length(value: str, max_length: int) -> None:
    result = truncate(value, max_length)

    assert len(result) <= max_length + len("...")
    assert result.startswith(value[:max_length])
    assert (result == value) == (len(value) <= max_length)


@given(
    tool_name=tool_names,
    args=st.lists(st.text(alphabet="abc+-,0123456789", max_size=40), max_size=20),
    exit_code=st.integers(min_value=1, max_value=255),
    stderr=st.text(max_size=2000),
)
def test_tool_error_message_is_bounded(
    tool_name: str, args: list[str], exit_code: int, stderr: str
) -> None:
    error = create_tool_error(tool_name, args, exit_code, stderr)
    message = str(error)

    assert message.startswith(f"{tool_name} failed (exit code {exit_code})")
    longest = (
        len(f"{tool_name} failed (exit code {exit_code})")
        + len(" | args: ") + MAX_ARGS_LENGTH + len("...")
        + len(" | stderr: ") + MAX_STDERR_LENGTH + len("...")
    )
    assert len(message) <= longest
    assert error.stderr == stderr
    assert error.arguments == tuple(args)
