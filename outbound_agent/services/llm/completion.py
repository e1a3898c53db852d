"""Chat completion client."""
import logging
from typing import Dict, List, Optional

import httpx
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class CompletionClient:
    """
    Thin wrapper over the OpenAI chat completions API.

    Requests are sent once and bounded by ``timeout``; callers substitute
    their own fallback text instead of retrying.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 10.0,
        client: Optional[AsyncOpenAI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            max_retries=0,
            timeout=timeout,
            http_client=http_client,
        )
        self.model = model

    async def complete(self, messages: List[Dict[str, str]], temperature: float) -> str:
        """
        Request a completion for ``messages``.

        Returns:
            The reply text, or an empty string when the model sent no content.

        Errors from the API propagate to the caller.
        """
        logger.debug(
            f"[COMPLETION] Requesting completion - model: {self.model}, "
            f"messages: {len(messages)}, temperature: {temperature}"
        )
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
