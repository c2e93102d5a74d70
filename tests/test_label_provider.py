"""Tests for the vision label provider."""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
import pytest_mock

from tests.fakes import make_settings
from wardrobe_intake.integrations.label_provider import (
    LabelProvider,
    clamp_confidence,
    normalize_tags,
)


def _completion(content: str, model: str = "gpt-4.1-mini") -> SimpleNamespace:
    message = SimpleNamespace(content=content)
    return SimpleNamespace(model=model, choices=[SimpleNamespace(message=message)])


def _provider(mocker: pytest_mock.MockerFixture, content: str) -> tuple[LabelProvider, object]:
    client = mocker.MagicMock()
    client.chat.completions.create = mocker.AsyncMock(return_value=_completion(content))
    return LabelProvider(make_settings(openai_api_key="sk-test"), client=client), client


@pytest.mark.asyncio
async def test_no_api_key_returns_none() -> None:
    provider = LabelProvider(make_settings(openai_api_key=""))

    assert not provider.enabled
    assert await provider.analyze("https://cdn.test/shirt.jpg") is None


@pytest.mark.asyncio
async def test_analyze_normalizes_model_output(mocker: pytest_mock.MockerFixture) -> None:
    content = json.dumps(
        {
            "catalog_name": "grey zip HOODIE",
            "garmentType": " Hoodie ",
            "subcategory": "zip hoodie",
            "color": "grey",
            "material": "",
            "tags": ["Zip-Up", "zip up", "cotton_blend", "", "casual"],
            "confidence": 1.7,
        }
    )
    provider, client = _provider(mocker, content)

    result = await provider.analyze("https://cdn.test/hoodie.jpg")

    assert result is not None
    assert result.catalog_name == "Grey Zip Hoodie"
    assert result.garment_type == "Hoodie"
    assert result.material is None
    assert result.tags == ["zip up", "cotton blend", "casual"]
    assert result.confidence == 1.0
    assert result.model == "gpt-4.1-mini"

    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    image_part = kwargs["messages"][1]["content"][1]
    assert image_part["image_url"]["url"] == "https://cdn.test/hoodie.jpg"


@pytest.mark.asyncio
async def test_invalid_json_raises(mocker: pytest_mock.MockerFixture) -> None:
    provider, _ = _provider(mocker, "not json")

    with pytest.raises(RuntimeError):
        await provider.analyze("https://cdn.test/x.jpg")


@pytest.mark.asyncio
async def test_missing_name_gets_placeholder(mocker: pytest_mock.MockerFixture) -> None:
    provider, _ = _provider(mocker, json.dumps({"tags": "not-a-list"}))

    result = await provider.analyze("https://cdn.test/x.jpg")

    assert result.catalog_name == "Unknown Item"
    assert result.tags == []
    assert result.confidence == 0.6


def test_tags_are_capped() -> None:
    assert len(normalize_tags([f"tag {i}" for i in range(50)])) == 30


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.4, 0.4), (-1, 0.0), (3, 1.0), (None, 0.6), ("0.9", 0.6), (float("nan"), 0.6), (True, 0.6)],
)
def test_clamp_confidence(value, expected: float) -> None:
    assert clamp_confidence(value) == expected
