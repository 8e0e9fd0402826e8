"""
Unit tests for prompt building, provider fallthrough and Gemini response parsing.
"""
from types import SimpleNamespace

import pytest

from gunmerch.errors import ProviderError
from gunmerch.services.gemini_svc import GeminiImageProvider, extract_generated_image_bytes
from gunmerch.services.image_synth import ImageSynthesizer, build_image_prompt


def _provider(mocker, name, *, configured=True, result=None, error=None):
    p = mocker.Mock()
    p.name = name
    p.is_configured = configured
    if error:
        p.generate.side_effect = error
    else:
        p.generate.return_value = result
    return p


@pytest.mark.unit
class TestBuildImagePrompt:

    def test_tokens_replaced(self):
        design = {
            "title": "Brace Yourself",
            "design_text": "My brace, my choice",
            "concept": "Brace rule joke",
            "meta": {"custom_prompt": "Retro 70s style.", "highlight_word": "brace", "highlight_color": "orange"},
        }
        template = "Slogan: {slogan}. About {concept}. {custom_prompt} {highlight} Title {title}"

        prompt = build_image_prompt(template, design)

        assert prompt == ('Slogan: My brace, my choice. About Brace rule joke. Retro 70s style. '
                          'Render the word "brace" in orange. Title Brace Yourself')

    def test_title_used_when_no_slogan(self):
        prompt = build_image_prompt("{slogan} {highlight}", {"title": "Only Title", "meta": {}})

        assert prompt == "Only Title"

    def test_unknown_braces_left_alone(self):
        assert build_image_prompt("{slogan} {size}", {"design_text": "x"}) == "x {size}"


@pytest.mark.unit
class TestImageSynthesizer:

    def test_no_provider(self, mocker, designs, assets, settings, activity, sample_design_data):
        design_id = designs.create_design(sample_design_data)
        synth = ImageSynthesizer(designs, assets, settings, activity, [_provider(mocker, "gemini", configured=False)])

        result = synth.generate_image(design_id)

        assert result.code == "no_provider"

    def test_missing_design(self, mocker, designs, assets, settings, activity):
        synth = ImageSynthesizer(designs, assets, settings, activity, [])

        assert synth.generate_image(99).code == "design_not_found"

    def test_primary_success_attaches_image(self, mocker, designs, assets, settings, activity,
                                            sample_design_data, sample_png):
        design_id = designs.create_design(sample_design_data)
        gemini = _provider(mocker, "gemini", result={"bytes": sample_png})
        openai = _provider(mocker, "openai", result={"bytes": sample_png})
        synth = ImageSynthesizer(designs, assets, settings, activity, [gemini, openai])

        result = synth.generate_image(design_id)

        design = designs.get_design(design_id)
        assert result.ok
        assert result.data["provider"] == "gemini"
        assert design["image"] == f"designs/{design_id}/design.png"
        assert design["design_type"] == "image"
        assert assets.exists(design["image"])
        assert assets.thumbnail_path(design_id, "medium") is not None
        openai.generate.assert_not_called()

    def test_falls_through_to_secondary(self, mocker, designs, assets, settings, activity,
                                        sample_design_data, sample_png):
        design_id = designs.create_design(sample_design_data)
        gemini = _provider(mocker, "gemini", error=ProviderError("quota"))
        openai = _provider(mocker, "openai", result={"bytes": sample_png})
        synth = ImageSynthesizer(designs, assets, settings, activity, [gemini, openai])

        result = synth.generate_image(design_id)

        assert result.ok
        assert result.data["provider"] == "openai"

    def test_all_providers_fail(self, mocker, designs, assets, settings, activity, sample_design_data):
        design_id = designs.create_design(sample_design_data)
        gemini = _provider(mocker, "gemini", error=ProviderError("quota"))
        openai = _provider(mocker, "openai", result={"bytes": b"not an image"})
        synth = ImageSynthesizer(designs, assets, settings, activity, [gemini, openai])

        result = synth.generate_image(design_id)

        assert result.code == "generation_failed"
        assert "gemini: quota" in result.message
        assert designs.get_design(design_id)["image"] is None

    def test_prompt_comes_from_setting(self, mocker, designs, assets, settings, activity,
                                       sample_design_data, sample_png):
        settings.update({"image_prompt_template": "PRINT {slogan}"})
        design_id = designs.create_design(sample_design_data)
        gemini = _provider(mocker, "gemini", result={"bytes": sample_png})

        ImageSynthesizer(designs, assets, settings, activity, [gemini]).generate_image(design_id)

        gemini.generate.assert_called_once_with("PRINT I lost everything in a boating accident")


@pytest.mark.unit
class TestGeminiProvider:

    def test_extract_inline_bytes_from_candidates(self):
        part = SimpleNamespace(inline_data=SimpleNamespace(data=b"\x89PNG..."))
        response = SimpleNamespace(parts=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])

        assert extract_generated_image_bytes(response) == b"\x89PNG..."

    def test_extract_returns_none_for_text_only(self):
        part = SimpleNamespace(inline_data=None, text="sorry")
        assert extract_generated_image_bytes(SimpleNamespace(parts=[part], candidates=[])) is None

    def test_generate_uses_client(self, mocker):
        part = SimpleNamespace(inline_data=SimpleNamespace(data=b"img"))
        fake = mocker.Mock()
        fake.models.generate_content.return_value = SimpleNamespace(parts=[part], candidates=[])
        provider = GeminiImageProvider("g-key")
        mocker.patch.object(provider, "_client", return_value=fake)

        assert provider.generate("a shirt")["bytes"] == b"img"

    def test_generate_without_image_is_provider_error(self, mocker):
        fake = mocker.Mock()
        fake.models.generate_content.return_value = SimpleNamespace(parts=[], candidates=[])
        provider = GeminiImageProvider("g-key")
        mocker.patch.object(provider, "_client", return_value=fake)

        with pytest.raises(ProviderError):
            provider.generate("a shirt")
