# smartbuild/modules/ignore.py
"""
Ignore list support.

The .sbignore file holds one package name per line. Ignored packages are
removed from the computed order after sorting, so they still count as
dependencies of other packages; only their own build is skipped.
"""

import os
from typing import Iterable, List, Set

IGNORE_FILE = ".sbignore"


def load_ignore_file(path: str) -> Set[str]:
    """Read ignored package names; a missing file means nothing is ignored."""
    if not os.path.isfile(path):
        return set()
    names = set()
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            name = line.strip()
            if name and not name.startswith("#"):
                names.add(name)
    return names


def filter_ignored(order: Iterable[str], ignoring: Iterable[str] = ()) -> List[str]:
    skip = set(ignoring)
    return [name for name in order if name not in skip]
