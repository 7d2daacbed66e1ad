"""
LLM Module for the Funding Follow-Up Engine.

This module handles:
- LLM provider abstraction (OpenAI, Bedrock)
- Prompt template and fallback message management
- Response parsing and verification
"""

from .guardrails import ResponseParseError, ResponseVerifier, VerificationResult, parse_json_response
from .prompt_templates import PromptTemplates, PromptType

__all__ = [
    "PromptTemplates",
    "PromptType",
    "ResponseParseError",
    "ResponseVerifier",
    "VerificationResult",
    "parse_json_response",
]
