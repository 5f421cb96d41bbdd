import pytest

from taxadvisor.illustration import TaxGraphicAgent, build_infographic_prompt, summarize
from taxadvisor.imagegen import ImageGenerationError
from tests.fakes import FakeImageClient


def test_summarize_truncates_long_text():
    assert summarize(None) == "(none)"
    assert summarize("short") == "short"
    assert summarize("x" * 700) == "x" * 600 + "..."


def test_prompt_includes_normalized_summaries():
    prompt = build_infographic_prompt("", "  strategy  ", None)
    assert "User question summary: (empty)" in prompt
    assert "Primary strategy summary: strategy" in prompt
    assert "Auditor risk summary: (empty)" in prompt
    assert "16:9" in prompt


@pytest.mark.asyncio
async def test_infographic_returns_image_and_sends_prompt():
    images = FakeImageClient(image="data:image/png;base64,QUJD")
    result = await TaxGraphicAgent(images).create_infographic("q", "primary", "audit")
    assert result == "data:image/png;base64,QUJD"
    assert "Primary strategy summary: primary" in images.prompts[0]


@pytest.mark.asyncio
async def test_timeout_yields_empty_string():
    images = FakeImageClient(image="data:image/png;base64,QUJD", delay_seconds=0.5)
    result = await TaxGraphicAgent(images, timeout_s=0.01).create_infographic("q", "p", "a")
    assert result == ""


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "images",
    [
        FakeImageClient(configured=False),
        FakeImageClient(error=ImageGenerationError("boom")),
        FakeImageClient(image="   "),
    ],
    ids=["unconfigured", "error", "blank"],
)
async def test_failures_yield_empty_string(images):
    assert await TaxGraphicAgent(images).create_infographic("q", "p", "a") == ""


@pytest.mark.asyncio
async def test_unconfigured_client_is_never_called():
    images = FakeImageClient(configured=False)
    await TaxGraphicAgent(images).create_infographic("q", "p", "a")
    assert images.prompts == []
