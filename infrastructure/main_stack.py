"""
Main CDK Stack for the helpdesk triage service.
"""

from aws_cdk import (
    BundlingOptions,
    Stack,
    Tags,
    CfnOutput,
    aws_iam as iam,
    aws_lambda as _lambda,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct
from infrastructure.constructs.event_pipeline import EventPipelineConstruct
from infrastructure.config.settings import Settings


class HelpdeskTriageStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "helpdesk-triage")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("CostCenter", "support-automation")
        Tags.of(self).add("ManagedBy", "cdk")

        # All Lambdas share one asset built from requirements-lambda.txt.
        lambda_code = _lambda.Code.from_asset(
            "src",
            bundling=BundlingOptions(
                image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                command=[
                    "bash", "-c",
                    "pip install -r requirements-lambda.txt -t /asset-output && "
                    "cp -r . /asset-output"
                ],
            ),
        )

        # 1) Data layer.
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
        )

        shared_env = {
            "ENVIRONMENT": settings.environment,
            "STUB_MODE": "true" if settings.stub_mode else "false",
            "MODEL_ID": settings.model_id,
            "FOLLOW_UP_DELAY_HOURS": str(settings.follow_up_delay_hours),
            **data_construct.table_env,
        }

        # 2) Event pipeline (triage queue + worker, follow-up scheduling).
        event_construct = EventPipelineConstruct(
            self,
            "EventPipeline",
            environment=settings.environment,
            lambda_code=lambda_code,
            shared_env=shared_env,
            worker_timeout_seconds=settings.worker_timeout_seconds,
            worker_batch_size=settings.worker_batch_size,
            max_receive_count=settings.max_receive_count,
        )

        # 3) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            lambda_code=lambda_code,
            shared_env={
                **shared_env,
                "TRIAGE_QUEUE_URL": event_construct.triage_queue.queue_url,
                **event_construct.follow_up_env,
            },
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # The worker runs decisions, so it schedules follow-ups too.
        for key, value in event_construct.follow_up_env.items():
            event_construct.worker_lambda.add_environment(key, value)

        # Permissions.
        event_construct.triage_queue.grant_send_messages(api_construct.main_lambda)
        for fn in (
            api_construct.main_lambda,
            event_construct.worker_lambda,
            event_construct.satisfaction_lambda,
        ):
            data_construct.grant_read_write(fn)
        for fn in (api_construct.main_lambda, event_construct.worker_lambda):
            event_construct.grant_schedule_management(fn)

        # Bedrock permissions for Lambdas that run triage stages.
        if not settings.stub_mode:
            bedrock_policy = iam.PolicyStatement(
                actions=[
                    "bedrock:InvokeModel",
                    "bedrock:InvokeModelWithResponseStream",
                ],
                resources=["*"],
            )
            api_construct.main_lambda.add_to_role_policy(bedrock_policy)
            event_construct.worker_lambda.add_to_role_policy(bedrock_policy)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "TriageQueueUrl", value=event_construct.triage_queue.queue_url)
        CfnOutput(self, "TriageDlqUrl", value=event_construct.dead_letter_queue.queue_url)
        CfnOutput(self, "TicketsTable", value=data_construct.tickets_table.table_name)
        CfnOutput(self, "AuditTable", value=data_construct.audit_table.table_name)
