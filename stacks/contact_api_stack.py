from pathlib import Path
from typing import Any
from aws_cdk import (
    Stack,
    CfnOutput,
    Duration,
    aws_apigateway as apigateway,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_route53 as route53,
    aws_route53_targets as targets
)
from constructs import Construct

FUNCTION_DIR = Path(__file__).resolve().parent.parent / "lambda" / "contact_form"

class ContactApiStack(Stack):
    """
    Deploys the contact form backend:
    1. Lambda Function forwarding submissions to SES.
    2. REST API with an API key and a usage plan (daily quota, rate, burst).
    3. Custom domain bound to the issued API certificate.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: Any,
        certificate: Any,
        hosted_zone: Any,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        allowed_origin = f"https://{config.domain_name}"

        # =================================================================
        # 1. CONTACT FUNCTION
        # =================================================================
        self.contact_fn = lambda_.Function(self, "ContactFn",
            runtime=lambda_.Runtime.PYTHON_3_12,
            handler="main.lambda_handler",
            code=lambda_.Code.from_asset(str(FUNCTION_DIR)),
            timeout=Duration.seconds(10),
            memory_size=128,
            environment={
                "SENDER": config.contact_sender,
                "RECIPIENT": config.contact_recipient,
                "ALLOWED_ORIGIN": allowed_origin
            }
        )

        # Least privilege: send only from the configured sender identity
        self.contact_fn.add_to_role_policy(iam.PolicyStatement(
            actions=["ses:SendEmail", "ses:SendRawEmail"],
            resources=[f"arn:aws:ses:{self.region}:{self.account}:identity/*"],
            conditions={
                "StringEquals": {"ses:FromAddress": config.contact_sender}
            }
        ))

        # =================================================================
        # 2. REST API
        # =================================================================
        self.api = apigateway.RestApi(self, "ContactApi",
            rest_api_name=f"contact-{config.name}",
            endpoint_configuration=apigateway.EndpointConfiguration(
                types=[apigateway.EndpointType.REGIONAL]
            ),
            deploy_options=apigateway.StageOptions(
                stage_name="prod",
                throttling_rate_limit=config.api_rate_limit,
                throttling_burst_limit=config.api_burst_limit
            ),
            default_cors_preflight_options=apigateway.CorsOptions(
                allow_origins=[allowed_origin],
                allow_methods=["POST", "OPTIONS"],
                allow_headers=["Content-Type", "X-Api-Key"]
            )
        )

        contact = self.api.root.add_resource("contact")
        contact.add_method("POST",
            apigateway.LambdaIntegration(self.contact_fn, proxy=True),
            api_key_required=True
        )

        # =================================================================
        # 3. USAGE PLAN & API KEY
        # =================================================================
        self.usage_plan = self.api.add_usage_plan("ContactUsagePlan",
            name=f"contact-{config.name}",
            throttle=apigateway.ThrottleSettings(
                rate_limit=config.api_rate_limit,
                burst_limit=config.api_burst_limit
            ),
            quota=apigateway.QuotaSettings(
                limit=config.api_quota_per_day,
                period=apigateway.Period.DAY
            )
        )
        self.usage_plan.add_api_stage(stage=self.api.deployment_stage)

        self.api_key = self.api.add_api_key("ContactApiKey",
            api_key_name=f"contact-site-{config.name}"
        )
        self.usage_plan.add_api_key(self.api_key)

        # =================================================================
        # 4. CUSTOM DOMAIN (bound to the issued certificate)
        # =================================================================
        self.domain = apigateway.DomainName(self, "ContactDomain",
            domain_name=config.api_domain_name,
            certificate=certificate,
            endpoint_type=apigateway.EndpointType.REGIONAL,
            security_policy=apigateway.SecurityPolicy.TLS_1_2,
            mapping=self.api
        )

        route53.ARecord(self, "ApiAliasRecord",
            zone=hosted_zone,
            record_name=config.api_domain_name,
            target=route53.RecordTarget.from_alias(targets.ApiGatewayDomain(self.domain))
        )

        # =================================================================
        # 5. OUTPUTS
        # =================================================================
        CfnOutput(self, "ContactEndpoint", value=f"https://{config.api_domain_name}/contact")
        CfnOutput(self, "ApiKeyId", value=self.api_key.key_id)
