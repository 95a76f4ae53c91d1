"""
Provider interface and adapters for graph generation.

The rules provider runs the local extractor. The remote provider calls a
hosted AI generation service that answers in the graph interchange schema.
Failures of the remote service are raised to the caller as-is; there is no
retry and no fallback to the rules provider.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import requests

from ..errors import GenerationError, GraphValidationError
from ..graph.schema import InfraGraph
from ..graph.validate import load_graph
from .extract import extract

logger = logging.getLogger(__name__)


class GraphProvider(ABC):
    """Abstract base class for graph generation providers."""

    def __init__(self):
        self.name = self.__class__.__name__.replace("Provider", "").lower()

    @abstractmethod
    def generate(self, text: str) -> InfraGraph:
        """
        Generate a resource graph from a description.

        Args:
            text: Raw description

        Returns:
            Generated graph
        """
        pass


class RulesProvider(GraphProvider):
    """Keyword-rule extractor, works offline."""

    def generate(self, text: str) -> InfraGraph:
        return extract(text)


class RemoteProvider(GraphProvider):
    """Hosted generation service reached over HTTP."""

    def __init__(self, url: Optional[str] = None, token: Optional[str] = None, timeout_s: float = 30.0):
        super().__init__()
        self.url = url or os.getenv("INFRAVIZ_GENERATOR_URL")
        self.token = token or os.getenv("INFRAVIZ_GENERATOR_TOKEN")
        self.timeout_s = timeout_s

    def generate(self, text: str) -> InfraGraph:
        if not self.url:
            raise GenerationError("No generation endpoint configured; set INFRAVIZ_GENERATOR_URL")

        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        logger.debug(f"Calling generation service at {self.url} with timeout {self.timeout_s}s")
        try:
            response = requests.post(self.url, json={"prompt": text}, headers=headers, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise GenerationError(f"Generation service unreachable: {e}") from e

        # Failures also come back as {"success": false, "error": ...}
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code != 200:
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise GenerationError(
                f"Generation service returned HTTP {response.status_code}: {detail or response.text[:200]}"
            )

        if payload is None:
            raise GenerationError("Generation service returned invalid JSON")

        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("error") if isinstance(payload, dict) else None
            raise GenerationError(message or "Generation service reported failure")

        try:
            graph = load_graph(payload.get("graph"))
        except GraphValidationError as e:
            raise GenerationError(f"Generation service returned an invalid graph: {e}") from e

        logger.info(f"Generation service returned {len(graph.nodes)} nodes")
        return graph


PROVIDERS = {
    "rules": RulesProvider,
    "remote": RemoteProvider,
}


def get_provider(name: Optional[str] = None) -> GraphProvider:
    """
    Get a generation provider by name.

    Args:
        name: Provider name ("rules", "remote"). Defaults to INFRAVIZ_GENERATOR, then "rules".

    Returns:
        Provider instance; unknown names resolve to the rules provider
    """
    provider_name = (name or os.getenv("INFRAVIZ_GENERATOR", "rules")).lower()
    provider_cls = PROVIDERS.get(provider_name)
    if provider_cls is None:
        logger.warning(f"Unknown provider '{provider_name}', using rules provider")
        provider_cls = RulesProvider
    return provider_cls()
