"""
Recommendation Agents
=====================

Interface of the generative agent used by the ``plan-activities`` step: a
prompt in, an ordered stream of text fragments out.
"""

import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator

from providers.openrouter_async import AsyncOpenRouterProvider

logger = logging.getLogger(__name__)


class RecommendationAgent(ABC):
    """Turns a prompt into a fragment sequence."""

    @abstractmethod
    def generate(self, prompt: str) -> AsyncIterator[str]:
        """
        Stream the answer to ``prompt``.

        Implementations are async generators: fragments arrive in generation
        order and at least one fragment is emitted before completion.
        """


class OpenRouterRecommendationAgent(RecommendationAgent):
    """
    Recommendation agent backed by an OpenRouter chat model.

    Args:
        provider: Streaming OpenRouter client
        instructions: System prompt describing persona and answer layout
    """

    def __init__(self, provider: AsyncOpenRouterProvider, instructions: str):
        self.provider = provider
        self.instructions = instructions

    async def generate(self, prompt: str) -> AsyncIterator[str]:
        messages = [
            {"role": "system", "content": self.instructions},
            {"role": "user", "content": prompt},
        ]
        logger.info(f"🤖 [Agent] Streaming recommendations from {self.provider.model}")
        async for fragment in self.provider.chat_stream(messages):
            yield fragment
