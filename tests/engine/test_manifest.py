from __future__ import annotations

import pytest

from tally_crawler.engine import ManifestError, ManifestResolver, TransportError


def _resolver(text: str = "") -> ManifestResolver:
    return ManifestResolver(lambda _url: text.encode("utf-8"))


def test_single_group_example_resolves_one_leaf() -> None:
    text = "secAreaID[0][0]='1';secAreaID[0][1]='2';secAreaName[0][0]='CityA';secAreaName[0][1]='DistrictA';"
    index = _resolver(text).resolve("https://results.example/tree.js")

    leaves = list(index.leaves())
    assert len(leaves) == 1
    leaf = leaves[0]
    assert (leaf.area_id, leaf.name, leaf.division) == ("2", "DistrictA", "CityA")
    header = index[0][0]
    assert header.is_header
    assert header.area_id == "1"
    assert header not in leaves


def test_members_inherit_group_header_name(sample_manifest: str) -> None:
    index = _resolver().parse(sample_manifest)

    assert len(index) == 2
    assert index.leaf_count() == 3
    assert [(a.area_id, a.division, a.name) for a in index.leaves()] == [
        ("63000010", "臺北市", "松山區"),
        ("63000020", "臺北市", "信義區"),
        ("65000010", "新北市", "板橋區"),
    ]
    assert [header.name for header in index.headers()] == ["臺北市", "新北市"]
    assert all(header.division == "" for header in index.headers())


@pytest.mark.parametrize("groups,members", [(1, 1), (3, 4), (7, 12)])
def test_resolve_yields_exactly_the_non_header_members(groups: int, members: int) -> None:
    lines = []
    for i in range(groups):
        for j in range(members + 1):
            lines.append(f"secAreaID[{i}][{j}]='{i * 1000 + j}';")
            lines.append(f"secAreaName[{i}][{j}]='G{i}M{j}';")
    index = _resolver().parse("\n".join(lines))

    leaves = list(index.leaves())
    assert len(leaves) == groups * members
    for leaf in leaves:
        assert leaf.member_index != 0
        assert leaf.division == f"G{leaf.group_index}M0"


def test_member_listed_before_header_still_inherits_division() -> None:
    text = (
        "secAreaID[2][1]='21';secAreaID[2][0]='20';"
        "secAreaName[2][1]='Harbour';secAreaName[2][0]='Port City';"
    )
    index = _resolver().parse(text)
    assert [(a.area_id, a.division) for a in index.leaves()] == [("21", "Port City")]


def test_missing_header_is_fatal() -> None:
    with pytest.raises(ManifestError, match="no header"):
        _resolver().parse("secAreaID[0][1]='2';secAreaName[0][1]='Orphan';")


def test_name_for_unknown_area_is_fatal() -> None:
    with pytest.raises(ManifestError, match="unknown area"):
        _resolver().parse("secAreaID[0][0]='1';secAreaName[0][3]='Ghost';")


def test_empty_manifest_is_fatal() -> None:
    with pytest.raises(ManifestError):
        _resolver("var tree = [];").resolve("https://results.example/tree.js")


def test_transport_failure_is_wrapped() -> None:
    def failing(url: str) -> bytes:
        raise TransportError(url, "connection refused")

    with pytest.raises(ManifestError, match="connection refused"):
        ManifestResolver(failing).resolve("https://results.example/tree.js")


def test_manifest_bytes_decoded_with_configured_encoding() -> None:
    text = "secAreaID[0][0]='1';secAreaID[0][1]='2';secAreaName[0][0]='高雄市';secAreaName[0][1]='前金區';"
    resolver = ManifestResolver(lambda _url: text.encode("big5"), encoding="big5")
    leaf = next(resolver.resolve("https://results.example/tree.js").leaves())
    assert (leaf.division, leaf.name) == ("高雄市", "前金區")
