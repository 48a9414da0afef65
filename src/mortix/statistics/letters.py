"""Compact letter display for post-hoc groupings.

Groups are ordered by mean (largest first, ties by label) and letters are
built with the insert-and-absorb procedure followed by a sweep that drops
redundant letters. Two groups share a letter exactly when they are not
significantly different.
"""

import string
from itertools import count
from typing import Dict, Iterable, List, Set, Tuple

LETTERS = string.ascii_lowercase + string.ascii_uppercase


def letter_name(index: int) -> str:
    """``a``..``z``, ``A``..``Z``, then ``a1``, ``b1``, ..."""
    if index < len(LETTERS):
        return LETTERS[index]
    cycle, position = divmod(index, len(LETTERS))
    return f"{LETTERS[position]}{cycle}"


def order_groups(means: Dict[str, float]) -> List[str]:
    """Labels by mean descending, ties broken by label ascending."""
    return sorted(means, key=lambda label: (-means[label], label))


def _absorb(columns: List[Set[int]]) -> List[Set[int]]:
    kept: List[Set[int]] = []
    for i, column in enumerate(columns):
        if not column:
            continue
        dominated = any(
            column < other or (column == other and j < i)
            for j, other in enumerate(columns)
            if j != i
        )
        if not dominated:
            kept.append(column)
    return kept


def _sweep(columns: List[Set[int]]) -> List[Set[int]]:
    columns = [set(column) for column in columns]
    for column in columns:
        for member in sorted(column):
            others = [c for c in columns if c is not column and member in c]
            if not others:
                continue
            partners = column - {member}
            if all(any(partner in c for c in others) for partner in partners):
                column.discard(member)
    return _absorb(columns)


def compact_letters(
    means: Dict[str, float],
    significant_pairs: Iterable[Tuple[str, str]],
) -> Dict[str, str]:
    """Assign homogeneous-subset letters.

    Args:
        means: Mean per group label.
        significant_pairs: Pairs of labels that differ significantly.

    Returns:
        Mapping label -> letters (e.g. ``"ab"``).
    """
    ordered = order_groups(means)
    position = {label: i for i, label in enumerate(ordered)}

    pairs = sorted(
        {tuple(sorted((position[a], position[b]))) for a, b in significant_pairs if a != b}
    )

    columns: List[Set[int]] = [set(range(len(ordered)))] if ordered else []
    for i, j in pairs:
        split: List[Set[int]] = []
        for column in columns:
            if i in column and j in column:
                split.append(column - {i})
                split.append(column - {j})
            else:
                split.append(column)
        columns = _absorb(split)

    columns = _sweep(columns)
    columns.sort(key=lambda column: (min(column), sorted(column)))

    names = {label: [] for label in ordered}
    for index, column in zip(count(), columns):
        for member in column:
            names[ordered[member]].append(letter_name(index))
    return {label: "".join(letters) for label, letters in names.items()}


def share_letter(first: str, second: str) -> bool:
    """Whether two letter codes have a letter in common."""
    return bool(_letter_set(first) & _letter_set(second))


def _letter_set(code: str) -> Set[str]:
    letters: Set[str] = set()
    current = ""
    for char in code:
        if char.isdigit() and current:
            current += char
        else:
            if current:
                letters.add(current)
            current = char
    if current:
        letters.add(current)
    return letters
