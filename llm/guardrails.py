"""
Response Verification & Guardrails for generated enrichment and messages.

Post-LLM checks that decide whether a generative response can be used or
whether the caller should fall back to its rule-based output.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class ResponseParseError(ValueError):
    """A generative response was not usable JSON or failed validation."""


def parse_json_response(content: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of a model response.

    Markdown code fences (```json ... ```) around the object are stripped.

    Raises:
        ResponseParseError: if the content is empty, not JSON, or not an object
    """
    if not content or not content.strip():
        raise ResponseParseError("Empty response")

    clean = content.strip()
    if clean.startswith("```json"):
        clean = clean[7:]
    elif clean.startswith("```"):
        clean = clean[3:]
    if clean.endswith("```"):
        clean = clean[:-3]
    clean = clean.strip()

    try:
        data = json.loads(clean)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ResponseParseError(f"Expected a JSON object, got {type(data).__name__}")

    return data


@dataclass
class VerificationResult:
    """Result of response verification."""
    passed: bool = True
    flags: List[str] = field(default_factory=list)
    original_response: Dict[str, Any] = field(default_factory=dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ResponseVerifier:
    """
    Verifies parsed LLM responses before they are used.

    Checks:
    1. Enrichment: score range, urgency vocabulary, list fields, funding range
    2. Messages: non-empty body, SMS length, email subject, tone vocabulary
    """

    URGENCY_LEVELS = {"immediate", "high", "medium", "low"}
    TONES = {"professional", "friendly", "urgent"}
    SMS_MAX_CHARS = 320

    LIST_FIELDS = ("insights", "riskFactors", "recommendedProducts")

    def verify_enrichment(self, data: Dict[str, Any]) -> VerificationResult:
        """
        Validate an enrichment response.

        Args:
            data: Parsed JSON object

        Returns:
            VerificationResult with flags
        """
        result = VerificationResult(original_response=data)

        score = data.get("leadScore")
        if not _is_number(score):
            result.flags.append("score_not_numeric")
        elif not 1 <= score <= 100:
            result.flags.append("score_out_of_range")

        urgency = data.get("urgencyLevel")
        if urgency is not None and urgency not in self.URGENCY_LEVELS:
            result.flags.append("unknown_urgency")

        for name in self.LIST_FIELDS:
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                result.flags.append(f"invalid_list:{name}")

        funding = data.get("estimatedFundingRange")
        if funding is not None:
            if not isinstance(funding, dict) or not _is_number(funding.get("min")) \
                    or not _is_number(funding.get("max")):
                result.flags.append("invalid_funding_range")
            elif funding["min"] > funding["max"]:
                result.flags.append("funding_range_inverted")

        next_action = data.get("nextBestAction")
        if next_action is not None and not isinstance(next_action, str):
            result.flags.append("invalid_next_action")

        result.passed = len(result.flags) == 0
        if not result.passed:
            logger.warning(f"Enrichment verification flags: {result.flags}")
        return result

    def verify_message(self, data: Dict[str, Any], channel: str) -> VerificationResult:
        """
        Validate a generated message for a channel.

        Args:
            data: Parsed JSON object
            channel: "sms" or "email"

        Returns:
            VerificationResult with flags
        """
        result = VerificationResult(original_response=data)

        body = data.get("body")
        if not isinstance(body, str) or not body.strip():
            result.flags.append("empty_body")
        elif channel == "sms" and len(body) > self.SMS_MAX_CHARS:
            result.flags.append("sms_too_long")

        if channel == "email":
            subject = data.get("subject")
            if not isinstance(subject, str) or not subject.strip():
                result.flags.append("missing_subject")

        tone = data.get("tone")
        if tone is not None and tone not in self.TONES:
            result.flags.append("unknown_tone")

        result.passed = len(result.flags) == 0
        if not result.passed:
            logger.warning(f"Message verification flags ({channel}): {result.flags}")
        return result
