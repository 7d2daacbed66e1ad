"""
AWS Bedrock LLM Provider.

Claude models on Bedrock via the Messages API. boto3 has no async client, so
agenerate() runs the blocking call on a worker thread.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"

# Assistant prefill that forces the reply to continue a JSON object
JSON_PREFILL = "{"


class BedrockProvider:
    """
    AWS Bedrock LLM provider.

    AWS credentials are resolved by boto3's own credential chain. JSON mode
    prefills the assistant turn with "{" and re-attaches it to the reply.
    """

    DEFAULT_MODEL = "anthropic.claude-3-haiku-20240307-v1:0"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        region: str = "us-east-1",
        max_tokens: int = 1024,
        temperature: float = 0.3,
        client: Optional[Any] = None
    ):
        """
        Initialize Bedrock provider.

        Args:
            model_id: Bedrock model ID
            region: AWS region
            max_tokens: Maximum tokens for response
            temperature: Default generation temperature
            client: Pre-built bedrock-runtime client
        """
        self.model_id = model_id
        self.region = region
        self.max_tokens = max_tokens
        self.temperature = temperature

        self._client = client or boto3.client("bedrock-runtime", region_name=region)
        logger.info(f"Bedrock provider initialized: {model_id} in {region}")

    @property
    def name(self) -> str:
        return "bedrock"

    def build_body(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False
    ) -> Dict[str, Any]:
        """Messages API request body for one user prompt."""
        messages = [{"role": "user", "content": [{"type": "text", "text": prompt}]}]
        if json_mode:
            messages.append({"role": "assistant", "content": [{"type": "text", "text": JSON_PREFILL}]})

        body: Dict[str, Any] = {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": self.max_tokens,
            "temperature": temperature if temperature is not None else self.temperature,
            "messages": messages,
        }
        if system:
            body["system"] = system
        return body

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False
    ) -> str:
        """
        Generate a completion (blocking).

        Raises:
            ClientError: on Bedrock API errors
            ValueError: when the model returns no text
        """
        body = self.build_body(prompt, system, temperature, json_mode)

        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
        except ClientError as e:
            logger.error(f"Bedrock API error: {e}")
            raise

        response_body = json.loads(response["body"].read())
        blocks = [b.get("text", "") for b in response_body.get("content") or [] if b.get("type") == "text"]
        text = "".join(blocks).strip()

        if not text:
            logger.warning(f"Empty response from Bedrock (stop_reason={response_body.get('stop_reason')})")
            raise ValueError("Empty response from Bedrock")

        if json_mode and not text.startswith(JSON_PREFILL):
            text = JSON_PREFILL + text
        return text

    async def agenerate(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        json_mode: bool = False
    ) -> str:
        """Async wrapper for generate()."""
        return await asyncio.to_thread(self.generate, prompt, system, temperature, json_mode)
