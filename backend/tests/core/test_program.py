"""Program Catalog - tag normalization and the discovery/premium split."""

import pytest

from app.core.program import Program, ProgramType, normalize_tags, split_programs


@pytest.mark.parametrize("raw, expected", [
    (["force", "mobilité"], ["force", "mobilité"]),
    ('["force", "mobilité"]', ["force", "mobilité"]),
    ("not json", []),
    ('{"a": 1}', []),
    (None, []),
    ("", []),
    ([1, "x"], ["1", "x"]),
])
def test_normalize_tags(raw, expected):
    assert normalize_tags(raw) == expected


def _program(pid, kind):
    return Program(id=pid, name=pid, type=kind)


def test_split_keeps_order_and_drops_unknown_types():
    split = split_programs([
        _program("a", "Premium"),
        _program("b", "Découverte"),
        _program("c", "Beta"),
        _program("d", "Premium"),
    ])

    assert [p.id for p in split[ProgramType.DISCOVERY]] == ["b"]
    assert [p.id for p in split[ProgramType.PREMIUM]] == ["a", "d"]


def test_split_of_empty_catalog():
    split = split_programs([])
    assert split == {ProgramType.DISCOVERY: [], ProgramType.PREMIUM: []}
