"""
Tests unitarios para la resolucion de URLs de ClickUp.
"""
import pytest

from tasksync.infrastructure.external.clickup.url_resolution import (
    ListReference,
    TokenSplitStrategy,
    ViewApiStrategy,
    extract_folder_id,
    extract_list_reference,
    is_clickup_reference,
    resolve_list_id,
)
from tasksync.shared.exceptions.sync import ResolutionError


class TestExtractListReference:
    @pytest.mark.parametrize(
        "url",
        [
            "https://app.clickup.com/9012/v/li/901234",
            "https://app.clickup.com/9012/v/l/li/901234",
            "https://app.clickup.com/9012/v/li/901234?pr=5",
        ],
    )
    def test_direct_list_urls(self, url: str) -> None:
        assert extract_list_reference(url) == ListReference(kind="list", value="901234")

    def test_view_url(self) -> None:
        ref = extract_list_reference("https://app.clickup.com/9012/v/l/6-901234-1?pr=90")

        assert ref == ListReference(kind="view", value="6-901234-1")

    def test_bare_id(self) -> None:
        assert extract_list_reference("  901234 ") == ListReference(kind="raw", value="901234")

    def test_empty_raises(self) -> None:
        with pytest.raises(ResolutionError):
            extract_list_reference("   ")


class TestFolderAndReference:
    def test_extract_folder_id(self) -> None:
        assert extract_folder_id("https://app.clickup.com/9012/v/o/f/555?pr=1") == "555"
        assert extract_folder_id("https://app.clickup.com/9012/v/li/901234") is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("901234", True),
            ("https://app.clickup.com/9012/v/li/901234", True),
            ("https://app.clickup.com/9012/v/l/6-901234-1", True),
            ("https://app.clickup.com/9012/v/o/f/555", True),
            ("https://example.com/v/li/901234", False),
            ("https://app.clickup.com/9012/home", False),
            ("no es un id", False),
            ("", False),
        ],
    )
    def test_is_clickup_reference(self, value: str, expected: bool) -> None:
        assert is_clickup_reference(value) is expected


class TestViewStrategies:
    @pytest.mark.asyncio
    async def test_token_split_candidates(self, fake_clickup) -> None:
        candidates = await TokenSplitStrategy().candidates("6-901-234-1", fake_clickup)

        assert candidates == ["901-234", "901-234-1"]

    @pytest.mark.asyncio
    async def test_token_split_needs_three_parts(self, fake_clickup) -> None:
        assert await TokenSplitStrategy().candidates("6-901", fake_clickup) == []

    @pytest.mark.asyncio
    async def test_view_api_returns_parent(self, fake_clickup) -> None:
        fake_clickup.views["v1"] = {"id": "v1", "parent": {"id": "L9", "type": 6}}

        assert await ViewApiStrategy().candidates("v1", fake_clickup) == ["L9"]

    @pytest.mark.asyncio
    async def test_view_api_error_returns_empty(self, fake_clickup) -> None:
        assert await ViewApiStrategy().candidates("missing", fake_clickup) == []


class TestResolveListId:
    @pytest.mark.asyncio
    async def test_direct_list_is_not_validated(self, fake_clickup) -> None:
        list_id = await resolve_list_id("https://app.clickup.com/9012/v/li/L1", fake_clickup)

        assert list_id == "L1"
        assert fake_clickup.calls == []

    @pytest.mark.asyncio
    async def test_view_resolved_via_api(self, fake_clickup) -> None:
        fake_clickup.add_list("L9")
        fake_clickup.views["6-abc-1"] = {"id": "6-abc-1", "parent": {"id": "L9", "type": 6}}

        list_id = await resolve_list_id("https://app.clickup.com/9012/v/l/6-abc-1", fake_clickup)

        assert list_id == "L9"

    @pytest.mark.asyncio
    async def test_view_resolved_via_token_split(self, fake_clickup) -> None:
        fake_clickup.add_list("901234")

        list_id = await resolve_list_id("https://app.clickup.com/9012/v/l/6-901234-1", fake_clickup)

        assert list_id == "901234"
        assert "get_list:901234" in fake_clickup.calls

    @pytest.mark.asyncio
    async def test_second_candidate_wins(self, fake_clickup) -> None:
        fake_clickup.add_list("901234-1")

        list_id = await resolve_list_id("https://app.clickup.com/9012/v/l/6-901234-1", fake_clickup)

        assert list_id == "901234-1"

    @pytest.mark.asyncio
    async def test_unresolvable_view_lists_candidates(self, fake_clickup) -> None:
        with pytest.raises(ResolutionError) as exc_info:
            await resolve_list_id("https://app.clickup.com/9012/v/l/6-901234-1", fake_clickup)

        assert exc_info.value.candidates == ["901234", "901234-1"]
