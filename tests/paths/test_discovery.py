"""Tests for directory pattern compression."""

from __future__ import annotations

import itertools

from agentic_knowledge.paths import discover_directory_patterns, discover_minimal_patterns

_FILES = [
    "README.md",
    "docs/guide/intro.md",
    "docs/guide/advanced.md",
    "docs/api/ref.md",
    "examples/basic.js",
    "examples/adv.js",
    "src/index.ts",
]


def test_directory_patterns_collapse_populated_directories() -> None:
    patterns = discover_directory_patterns(_FILES)

    assert "docs/" in patterns
    assert "examples/" in patterns
    assert "README.md" in patterns
    assert not any(item.startswith("docs/") and item != "docs/" for item in patterns)
    assert not any(item.startswith("examples/") and item != "examples/" for item in patterns)
    assert "src/index.ts" in patterns


def test_directory_patterns_keep_singletons_literal() -> None:
    assert discover_directory_patterns(["examples/basic.js"]) == ["examples/basic.js"]
    assert discover_directory_patterns(["README.md", "LICENSE"]) == ["LICENSE", "README.md"]


def test_directory_patterns_are_sorted_and_permutation_invariant() -> None:
    expected = discover_directory_patterns(_FILES)
    assert expected == sorted(expected)
    for permutation in itertools.islice(itertools.permutations(_FILES), 50):
        assert discover_directory_patterns(list(permutation)) == expected


def test_duplicate_entries_do_not_create_directory_patterns() -> None:
    assert discover_directory_patterns(["docs/a.md", "docs/a.md"]) == ["docs/a.md"]


def test_empty_input_yields_empty_patterns() -> None:
    assert discover_directory_patterns([]) == []
    assert discover_minimal_patterns([]) == []


def test_minimal_patterns_match_directory_grouping() -> None:
    minimal = discover_minimal_patterns(list(reversed(_FILES)))

    assert minimal == sorted(minimal)
    assert set(minimal) == set(discover_directory_patterns(_FILES))
