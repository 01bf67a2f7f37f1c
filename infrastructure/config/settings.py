"""
Environment-specific configuration settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Stub stages need no model access; set STUB_MODE=false to use Bedrock.
    stub_mode: bool = True
    model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"  # Cost-optimized

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30
    worker_timeout_seconds: int = 60

    # Triage queue
    worker_batch_size: int = 5
    max_receive_count: int = 3

    # Satisfaction follow-up delay after an auto-close
    follow_up_delay_hours: int = 24

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        stub_mode = os.environ.get("STUB_MODE", "true").lower() == "true"
        region = os.environ.get("AWS_REGION", cls.aws_region)

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                aws_region=region,
                stub_mode=stub_mode,
                lambda_memory_mb=1024,
                lambda_timeout_seconds=60,
                worker_timeout_seconds=120,
            )

        return cls(environment=env, aws_region=region, stub_mode=stub_mode)
