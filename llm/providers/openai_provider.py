"""
OpenAI LLM Provider.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from config.credentials import CredentialProvider, StaticCredentials

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI chat completions provider.

    The API key is read from the injected credential provider on every call,
    so a rotated key takes effect without rebuilding the provider.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        credentials: Optional[CredentialProvider] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        client_factory: Optional[Callable[..., Any]] = None
    ):
        """
        Initialize OpenAI provider.

        Args:
            credentials: Provider for the OpenAI API key
            model_id: Model ID
            max_tokens: Maximum tokens
            temperature: Default generation temperature
            client_factory: Builds the async client from an api_key (AsyncOpenAI by default)
        """
        self.credentials = credentials or StaticCredentials()
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client_factory = client_factory or AsyncOpenAI
        self._cached_client: Optional[Any] = None
        self._cached_token: Optional[str] = None

        logger.info(f"OpenAI provider initialized: {model_id}")

    @property
    def name(self) -> str:
        return "openai"

    async def _client(self) -> Any:
        """
        The async client for the current API key.

        One client (and its connection pool) is reused until the key
        changes; the replaced client is closed.
        """
        api_key = self.credentials.get_token()
        if self._cached_client is not None and api_key == self._cached_token:
            return self._cached_client

        stale = self._cached_client
        # Without a key the SDK falls back to OPENAI_API_KEY
        self._cached_client = self._client_factory(api_key=api_key) if api_key else self._client_factory()
        self._cached_token = api_key
        if stale is not None:
            logger.info("OpenAI API key changed, rebuilding client")
            await self._close(stale)
        return self._cached_client

    @staticmethod
    async def _close(client: Any) -> None:
        close = getattr(client, "close", None)
        if close is not None:
            await close()

    async def aclose(self) -> None:
        """Close the cached client."""
        if self._cached_client is not None:
            await self._close(self._cached_client)
            self._cached_client = None
            self._cached_token = None

    @staticmethod
    def build_messages(prompt: str, system: Optional[str] = None) -> List[Dict[str, str]]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def agenerate(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False
    ) -> str:
        """
        Generate a completion for a single user prompt.

        Args:
            prompt: User prompt
            system: System prompt
            temperature: Override temperature
            json_mode: Ask the model for a JSON object response

        Returns:
            Generated text

        Raises:
            ValueError: when the model returns no content
        """
        kwargs: Dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        client = await self._client()
        try:
            response = await client.chat.completions.create(
                model=self.model_id,
                messages=self.build_messages(prompt, system),
                max_tokens=self.max_tokens,
                temperature=temperature if temperature is not None else self.temperature,
                **kwargs
            )
        except Exception as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise

        content = response.choices[0].message.content
        if not content:
            raise ValueError("Empty response from OpenAI")
        return content.strip()
