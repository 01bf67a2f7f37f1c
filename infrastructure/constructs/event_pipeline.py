"""
Event pipeline: SQS -> triage worker Lambda, plus EventBridge Scheduler
follow-ups -> satisfaction-check Lambda.
"""

from aws_cdk import (
    Duration,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_lambda_event_sources as event_sources,
    aws_logs as logs,
    aws_scheduler as scheduler,
    aws_sqs as sqs,
)
from constructs import Construct


class EventPipelineConstruct(Construct):
    """Queue-driven triage and durable satisfaction follow-ups."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        lambda_code: _lambda.Code,
        shared_env: dict,
        worker_timeout_seconds: int = 60,
        worker_batch_size: int = 5,
        max_receive_count: int = 3,
    ) -> None:
        super().__init__(scope, construct_id)

        common_lambda_kwargs = dict(
            runtime=_lambda.Runtime.PYTHON_3_12,
            code=lambda_code,
            architecture=_lambda.Architecture.X86_64,
            log_retention=logs.RetentionDays.ONE_WEEK,
            environment=shared_env,
        )

        # Messages that keep failing end up here for inspection.
        self.dead_letter_queue = sqs.Queue(
            self,
            "TriageDlq",
            retention_period=Duration.days(14),
        )
        # Visibility timeout must exceed the worker timeout.
        self.triage_queue = sqs.Queue(
            self,
            "TriageQueue",
            visibility_timeout=Duration.seconds(worker_timeout_seconds * 6),
            dead_letter_queue=sqs.DeadLetterQueue(
                max_receive_count=max_receive_count,
                queue=self.dead_letter_queue,
            ),
        )

        self.worker_lambda = _lambda.Function(
            self,
            "TriageWorker",
            handler="handlers.triage_worker.lambda_handler",
            memory_size=512,
            timeout=Duration.seconds(worker_timeout_seconds),
            **common_lambda_kwargs,
        )
        self.worker_lambda.add_event_source(
            event_sources.SqsEventSource(
                self.triage_queue,
                batch_size=worker_batch_size,
                report_batch_item_failures=True,
            )
        )

        self.satisfaction_lambda = _lambda.Function(
            self,
            "SatisfactionCheck",
            handler="handlers.satisfaction_check.lambda_handler",
            memory_size=256,
            timeout=Duration.seconds(30),
            **common_lambda_kwargs,
        )

        # One-shot schedules live in their own group so they are easy to list.
        self.schedule_group = scheduler.CfnScheduleGroup(
            self,
            "FollowUpGroup",
            name=f"helpdesk-follow-ups-{environment}",
        )
        self.scheduler_role = iam.Role(
            self,
            "SchedulerRole",
            assumed_by=iam.ServicePrincipal("scheduler.amazonaws.com"),
        )
        self.satisfaction_lambda.grant_invoke(self.scheduler_role)

    @property
    def follow_up_env(self) -> dict:
        return {
            "FOLLOW_UP_TARGET_ARN": self.satisfaction_lambda.function_arn,
            "FOLLOW_UP_ROLE_ARN": self.scheduler_role.role_arn,
            "FOLLOW_UP_SCHEDULE_GROUP": self.schedule_group.ref,
        }

    def grant_schedule_management(self, fn: _lambda.IFunction) -> None:
        """Allow a Lambda to create and cancel follow-up schedules."""
        fn.add_to_role_policy(
            iam.PolicyStatement(
                actions=[
                    "scheduler:CreateSchedule",
                    "scheduler:DeleteSchedule",
                    "scheduler:ListSchedules",
                ],
                resources=["*"],
            )
        )
        fn.add_to_role_policy(
            iam.PolicyStatement(
                actions=["iam:PassRole"],
                resources=[self.scheduler_role.role_arn],
            )
        )
