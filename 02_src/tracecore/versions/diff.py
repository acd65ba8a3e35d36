"""Text diffs for version history and revert previews."""

import difflib

NO_CHANGES = "No changes."
NO_NEWLINE_MARKER = "\\ No newline at end of file\n"


def _split_lines(content: str) -> list[str]:
    """Split on '\\n' only, keeping line endings."""
    lines = [line + "\n" for line in content.split("\n")]
    # The piece after the last '\n' never had one
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def build_patch(
    old_content: str,
    new_content: str,
    from_label: str,
    to_label: str,
    context_lines: int = 3,
) -> str:
    """Unified patch between two snapshots, as stored on a VersionRecord.

    Line endings are kept as-is; a last line without a newline is followed
    by the usual "\\ No newline at end of file" marker.
    """
    out = []
    for line in difflib.unified_diff(
        _split_lines(old_content),
        _split_lines(new_content),
        fromfile=from_label,
        tofile=to_label,
        fromfiledate="Previous Content",
        tofiledate="New Content",
        n=context_lines,
    ):
        if line.endswith("\n"):
            out.append(line)
        else:
            out.append(line + "\n" + NO_NEWLINE_MARKER)

    if not out:
        # Identical snapshots still get a header
        out = [
            f"--- {from_label}\tPrevious Content\n",
            f"+++ {to_label}\tNew Content\n",
        ]
    return "".join(out)


def generate_diff(old_content: str, new_content: str) -> str:
    """Line diff for previews: every non-empty line prefixed with '+', '-' or ' '."""
    if old_content == new_content:
        return NO_CHANGES

    old_lines = [line for line in old_content.split("\n") if line]
    new_lines = [line for line in new_content.split("\n") if line]

    out = []
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            out.extend(f"  {line}" for line in old_lines[i1:i2])
            continue
        if tag in ("delete", "replace"):
            out.extend(f"- {line}" for line in old_lines[i1:i2])
        if tag in ("insert", "replace"):
            out.extend(f"+ {line}" for line in new_lines[j1:j2])

    return "\n".join(out).rstrip()
