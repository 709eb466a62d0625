"""Template interpolation: `{column}` tokens to record values.

A bounded fixed-point iteration, never recursion. Each pass walks the columns
in schema order and replaces every occurrence of a column's token with that
column's record value. A value substituted in pass 1 that itself holds tokens
is resolved in pass 2. Whatever remains after `passes` passes stays verbatim,
so cycles such as {a} -> "{b}", {b} -> "{a}" terminate.

Deeper reference chains than `passes` are left partially resolved.
"""

from collections.abc import Mapping, Sequence

from gridsync.core.schema import Column

DEFAULT_PASSES = 2


def interpolate(
    text: str,
    values: Mapping[str, str],
    columns: Sequence[Column],
    passes: int = DEFAULT_PASSES,
) -> str:
    for _ in range(passes):
        if "{" not in text:
            break
        for column in columns:
            if "{" not in text:
                break
            if column.token in text:
                text = text.replace(column.token, values.get(column.name, ""))
    return text
