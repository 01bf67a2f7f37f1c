"""
API layer construct: shared Lambda + HTTP API routes.

A single Lambda keeps the triage app warm across routes and reduces cold
start costs.
"""

from aws_cdk import (
    Duration,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as integrations,
    aws_logs as logs,
)
from constructs import Construct


class ApiLayerConstruct(Construct):
    """Expose helpdesk endpoints via HTTP API."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        lambda_code: _lambda.Code,
        shared_env: dict,
        lambda_memory_mb: int = 512,
        lambda_timeout_seconds: int = 30,
    ) -> None:
        super().__init__(scope, construct_id)

        self.main_lambda = _lambda.Function(
            self,
            "ApiHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.main.lambda_handler",
            code=lambda_code,
            memory_size=lambda_memory_mb,
            timeout=Duration.seconds(lambda_timeout_seconds),
            architecture=_lambda.Architecture.X86_64,
            environment=shared_env,
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        # HTTP API with minimal latency and low cost.
        self.api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"helpdesk-triage-api-{environment}",
            cors_preflight=apigw.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[apigw.CorsHttpMethod.ANY],
            ),
        )

        integration = integrations.HttpLambdaIntegration(
            "LambdaIntegration", self.main_lambda
        )

        route_defs = [
            (apigw.HttpMethod.POST, "/tickets"),
            (apigw.HttpMethod.POST, "/tickets/{ticket_id}/replies"),
            (apigw.HttpMethod.POST, "/agent/triage"),
            (apigw.HttpMethod.GET, "/agent/suggestion/{ticket_id}"),
            (apigw.HttpMethod.GET, "/agent/stats"),
            (apigw.HttpMethod.GET, "/audit/tickets/{ticket_id}"),
            (apigw.HttpMethod.GET, "/health"),
        ]

        for method, path in route_defs:
            self.api.add_routes(
                path=path,
                methods=[method],
                integration=integration,
            )
