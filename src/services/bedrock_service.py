"""
Amazon Bedrock model client.

Shared by the LLM-backed classifier and drafter. Both stay behind the same
contract as the deterministic stages and are only built when STUB_MODE is off.
"""

from __future__ import annotations

import json
import os
from typing import Optional

import boto3

from utils.logging_config import get_logger

logger = get_logger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class BedrockModelClient:
    """Thin wrapper over `bedrock-runtime` InvokeModel for Anthropic models."""

    def __init__(
        self,
        model_id: Optional[str] = None,
        region: Optional[str] = None,
        client=None,
    ):
        self.model_id = model_id or os.environ.get("MODEL_ID") or None
        resolved_region = (
            region
            or os.environ.get("BEDROCK_REGION")
            or os.environ.get("AWS_REGION")
            or "eu-west-2"
        )
        self.client = client or boto3.client("bedrock-runtime", region_name=resolved_region)

    @property
    def configured(self) -> bool:
        return bool(self.model_id)

    def invoke(self, prompt: str, max_tokens: int = 300, temperature: float = 0.2) -> str:
        """Send a single-turn prompt and return the first text block."""
        if not self.configured:
            raise NotImplementedError("No Bedrock model configured; set MODEL_ID")

        response = self.client.invoke_model(
            modelId=self.model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(
                {
                    "anthropic_version": ANTHROPIC_VERSION,
                    "messages": [
                        {"role": "user", "content": [{"type": "text", "text": prompt}]}
                    ],
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                }
            ),
        )
        payload = json.loads(response["body"].read())
        text = payload["content"][0]["text"]
        logger.info(
            "Bedrock invocation complete",
            extra={"model_id": self.model_id, "response_length": len(text)},
        )
        return text
