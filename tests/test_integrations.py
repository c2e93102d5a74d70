"""Tests for external integration connectivity helpers."""

from __future__ import annotations

import pytest
import pytest_mock

from tests.fakes import make_settings
from wardrobe_intake.integrations.checks import (
    check_blob_store,
    check_label_provider,
    run_all_checks,
)


@pytest.mark.asyncio
async def test_check_blob_store_success(mocker: pytest_mock.MockerFixture) -> None:
    gateway_mock = mocker.patch("wardrobe_intake.integrations.checks.BlobGateway", autospec=True)
    instance = gateway_mock.return_value
    instance.bucket = "wardrobe-candidates"
    instance.ping = mocker.AsyncMock(return_value=True)
    instance.close = mocker.AsyncMock(return_value=None)

    result = await check_blob_store(make_settings())

    assert result.success
    assert "wardrobe-candidates" in result.message
    instance.ping.assert_awaited_once()
    instance.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_check_label_provider_failure(mocker: pytest_mock.MockerFixture) -> None:
    provider_mock = mocker.patch("wardrobe_intake.integrations.checks.LabelProvider", autospec=True)
    instance = provider_mock.return_value
    instance.ping = mocker.AsyncMock(return_value=False)
    instance.close = mocker.AsyncMock(return_value=None)

    result = await check_label_provider(make_settings())

    assert not result.success
    assert "non-success" in result.message.lower()


@pytest.mark.asyncio
async def test_unconfigured_services_report_errors() -> None:
    settings = make_settings(supabase_url="", qstash_token="", openai_api_key="")

    results = await run_all_checks(settings)

    assert [result.name for result in results] == ["Blob store", "Job queue", "Vision"]
    assert not any(result.success for result in results)
    assert "QSTASH_TOKEN" in results[1].message
