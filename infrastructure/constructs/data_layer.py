"""
Data layer construct: one on-demand DynamoDB table per store.
"""

from aws_cdk import (
    RemovalPolicy,
    aws_dynamodb as dynamodb,
    aws_iam as iam,
)
from constructs import Construct

SUGGESTIONS_BY_TICKET_INDEX = "ticket_id-created_at-index"


class DataLayerConstruct(Construct):
    """Provision the ticket, article, suggestion, audit and config tables."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
    ) -> None:
        super().__init__(scope, construct_id)

        common = dict(
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=environment == "prod",
            removal_policy=RemovalPolicy.RETAIN if environment == "prod" else RemovalPolicy.DESTROY,
        )

        self.tickets_table = dynamodb.Table(
            self,
            "Tickets",
            partition_key=dynamodb.Attribute(name="id", type=dynamodb.AttributeType.STRING),
            **common,
        )

        self.articles_table = dynamodb.Table(
            self,
            "Articles",
            partition_key=dynamodb.Attribute(name="id", type=dynamodb.AttributeType.STRING),
            **common,
        )

        self.suggestions_table = dynamodb.Table(
            self,
            "Suggestions",
            partition_key=dynamodb.Attribute(name="id", type=dynamodb.AttributeType.STRING),
            **common,
        )
        # Latest suggestion per ticket.
        self.suggestions_table.add_global_secondary_index(
            index_name=SUGGESTIONS_BY_TICKET_INDEX,
            partition_key=dynamodb.Attribute(name="ticket_id", type=dynamodb.AttributeType.STRING),
            sort_key=dynamodb.Attribute(name="created_at", type=dynamodb.AttributeType.STRING),
        )

        # Append-only; sk is "<timestamp>#<entry id>" so a query returns the trail in order.
        self.audit_table = dynamodb.Table(
            self,
            "AuditLog",
            partition_key=dynamodb.Attribute(name="ticket_id", type=dynamodb.AttributeType.STRING),
            sort_key=dynamodb.Attribute(name="sk", type=dynamodb.AttributeType.STRING),
            **common,
        )

        self.config_table = dynamodb.Table(
            self,
            "Config",
            partition_key=dynamodb.Attribute(name="id", type=dynamodb.AttributeType.STRING),
            **common,
        )

    @property
    def table_env(self) -> dict:
        """Environment variables the runtime settings read table names from."""
        return {
            "STORE_BACKEND": "dynamodb",
            "TICKETS_TABLE": self.tickets_table.table_name,
            "ARTICLES_TABLE": self.articles_table.table_name,
            "SUGGESTIONS_TABLE": self.suggestions_table.table_name,
            "AUDIT_TABLE": self.audit_table.table_name,
            "CONFIG_TABLE": self.config_table.table_name,
        }

    def grant_read_write(self, grantee: iam.IGrantable) -> None:
        for table in (
            self.tickets_table,
            self.articles_table,
            self.suggestions_table,
            self.audit_table,
            self.config_table,
        ):
            table.grant_read_write_data(grantee)
