"""
Basic tests for generation providers.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from infraviz.errors import GenerationError
from infraviz.nlp.providers import RemoteProvider, RulesProvider, get_provider

GRAPH = {
    "nodes": [{"id": "n1", "type": "s3", "label": "Assets", "properties": {}, "position": {"x": 0, "y": 0}}],
    "edges": [],
    "metadata": {"name": "Remote", "region": "eu-west-1"},
}


def _response(status_code=200, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


class TestProviderSelection:
    """Test provider lookup."""

    def test_default_is_rules(self, monkeypatch):
        monkeypatch.delenv("INFRAVIZ_GENERATOR", raising=False)
        provider = get_provider()
        assert isinstance(provider, RulesProvider)
        assert provider.name == "rules"

    def test_env_selects_remote(self, monkeypatch):
        monkeypatch.setenv("INFRAVIZ_GENERATOR", "remote")
        assert get_provider().name == "remote"

    def test_unknown_falls_back_to_rules(self):
        assert isinstance(get_provider("crystal-ball"), RulesProvider)

    def test_rules_provider_generates(self):
        graph = RulesProvider().generate("an s3 bucket")
        assert [n.type for n in graph.nodes] == ["s3"]


class TestRemoteProvider:
    """Test the remote generation adapter."""

    def test_success(self):
        provider = RemoteProvider(url="http://gen.test/generate", token="secret")
        with patch("infraviz.nlp.providers.requests.post") as mock_post:
            mock_post.return_value = _response(payload={"success": True, "graph": GRAPH})
            graph = provider.generate("static site")

        assert graph.nodes[0].label == "Assets"
        assert graph.metadata.region == "eu-west-1"
        args, kwargs = mock_post.call_args
        assert args[0] == "http://gen.test/generate"
        assert kwargs["json"] == {"prompt": "static site"}
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_missing_url(self, monkeypatch):
        monkeypatch.delenv("INFRAVIZ_GENERATOR_URL", raising=False)
        with pytest.raises(GenerationError):
            RemoteProvider().generate("anything")

    @pytest.mark.parametrize("response", [
        _response(status_code=500, text="boom"),
        _response(payload=ValueError("not json")),
        _response(payload={"success": False, "error": "quota exceeded"}),
        _response(payload={"success": True, "graph": {"nodes": "bad", "edges": []}}),
    ])
    def test_failures_raise(self, response):
        provider = RemoteProvider(url="http://gen.test/generate")
        with patch("infraviz.nlp.providers.requests.post", return_value=response):
            with pytest.raises(GenerationError):
                provider.generate("anything")

    def test_network_error(self):
        provider = RemoteProvider(url="http://gen.test/generate")
        with patch("infraviz.nlp.providers.requests.post", side_effect=requests.ConnectionError("down")):
            with pytest.raises(GenerationError, match="unreachable"):
                provider.generate("anything")

    def test_error_body_is_reported(self):
        """Test the service's own error message survives a non-200 reply."""
        provider = RemoteProvider(url="http://gen.test/generate")
        response = _response(status_code=500, payload={"success": False, "error": "quota exceeded"})
        with patch("infraviz.nlp.providers.requests.post", return_value=response):
            with pytest.raises(GenerationError, match="HTTP 500: quota exceeded"):
                provider.generate("anything")
