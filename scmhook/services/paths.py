"""Changed-files summary for commit notifications.

Collapses a list of changed paths into one short line: the longest common
directory shared by every path, then the paths relative to it::

    ["src/lib/main.c", "src/lib/main.h"]  ->  "src/lib/ main.c main.h"
"""

from collections.abc import Sequence

# A shared prefix shorter than this ("" or "/") is not worth factoring out.
MIN_PREFIX_LENGTH = 2


def path_prefix_length(a: str, b: str, max_length: int) -> int:
    """Return the length of the common directory prefix of *a* and *b*.

    The prefix always ends right after a ``/``; a partially matching last
    segment does not count. At most *max_length* characters are compared.
    """
    length = 0
    for i in range(min(max_length, len(a), len(b))):
        if a[i] != b[i]:
            break
        if a[i] == "/":
            length = i + 1
    return length


def rename_display(old_path: str, new_path: str) -> str:
    """Combine both sides of a rename or copy, e.g. ``src/{a.c => b.c}``."""
    length = path_prefix_length(old_path, new_path, len(old_path))
    return f"{old_path[:length]}{{{old_path[length:]} => {new_path[length:]}}}"


def summarize_paths(paths: Sequence[str]) -> str:
    """Summarize *paths* into a single line, keeping input order.

    Returns an empty string for no paths and the path itself for one path.
    """
    if not paths:
        return ""
    if len(paths) == 1:
        return paths[0]

    first = paths[0]
    prefix_length = len(first)
    for path in paths[1:]:
        prefix_length = path_prefix_length(first, path, prefix_length)
        if prefix_length < MIN_PREFIX_LENGTH:
            prefix_length = 0
            break

    files = " ".join(path[prefix_length:] for path in paths)
    if prefix_length == 0:
        return files
    return f"{first[:prefix_length]} {files}"
