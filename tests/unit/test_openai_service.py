"""
Unit tests for the OpenAI chat and image clients.
"""
import base64

import pytest
import httpx
import respx

from gunmerch.errors import ConfigurationError, ProviderError
from gunmerch.services import openai_svc
from gunmerch.services.openai_svc import OpenAIChatClient, OpenAIImageProvider


@pytest.mark.unit
class TestOpenAIChatClient:

    @respx.mock
    def test_complete_success(self):
        route = respx.route(host="api.openai.com", path="/v1/chat/completions").mock(
            return_value=httpx.Response(200, json={
                "choices": [{"message": {"content": "Title: Ammo Anxiety\nSlogan: Reload responsibly"}}]
            })
        )
        client = OpenAIChatClient("sk-test")

        content = client.complete("system", "user prompt")

        assert content.startswith("Title: Ammo Anxiety")
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-test"

    def test_complete_without_key(self):
        with pytest.raises(ConfigurationError):
            OpenAIChatClient(None).complete("system", "user")

    @respx.mock
    def test_http_error_includes_body(self):
        respx.route(host="api.openai.com", path="/v1/chat/completions").mock(
            return_value=httpx.Response(429, text="rate limited")
        )

        with pytest.raises(httpx.HTTPStatusError, match="rate limited"):
            OpenAIChatClient("sk-test").complete("system", "user")

    @respx.mock
    def test_empty_content_is_provider_error(self):
        respx.route(host="api.openai.com", path="/v1/chat/completions").mock(
            return_value=httpx.Response(200, json={"choices": []})
        )

        with pytest.raises(ProviderError):
            OpenAIChatClient("sk-test").complete("system", "user")


@pytest.mark.unit
class TestOpenAIImageProvider:

    def _fake_client(self, mocker, item):
        fake = mocker.Mock()
        fake.images.generate.return_value = mocker.Mock(data=[item])
        mocker.patch.object(openai_svc, "OpenAI", return_value=fake)
        return fake

    def test_generate_with_inline_bytes(self, mocker, sample_png):
        item = mocker.Mock(b64_json=base64.b64encode(sample_png).decode(), url=None)
        self._fake_client(mocker, item)

        result = OpenAIImageProvider("sk-test").generate("a shirt")

        assert result["bytes"] == sample_png

    @respx.mock
    def test_generate_downloads_hosted_url(self, mocker, sample_png):
        item = mocker.Mock(b64_json=None, url="https://cdn.example.com/img.png")
        self._fake_client(mocker, item)
        respx.get("https://cdn.example.com/img.png").mock(
            return_value=httpx.Response(200, content=sample_png, headers={"content-type": "image/png"})
        )

        result = OpenAIImageProvider("sk-test").generate("a shirt")

        assert result["bytes"] == sample_png
        assert result["url"] == "https://cdn.example.com/img.png"

    @respx.mock
    def test_download_rejects_non_image(self):
        respx.get("https://cdn.example.com/page").mock(
            return_value=httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})
        )

        with pytest.raises(ProviderError):
            openai_svc.download_image("https://cdn.example.com/page")
