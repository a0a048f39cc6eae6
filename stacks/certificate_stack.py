from typing import Any, List, Optional
from aws_cdk import (
    Stack,
    CfnOutput,
    aws_certificatemanager as acm
)
from constructs import Construct

from certflow.models import CertificateRequest

class CertificateStack(Stack):
    """
    Requests a TLS certificate and validates it through DNS records that
    CloudFormation writes into the hosted zone. The certificate resource only
    completes once ACM reports it as issued, so anything referencing
    `self.certificate` is created after validation.

    The construct id carries a digest of the domain set. Changing the names
    adds a new certificate under a new cross-stack export instead of
    rewriting the export dependents still import.

    Note: the site certificate MUST be deployed in us-east-1 for CloudFront
    compatibility. The API certificate lives in the API's own region.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: Any,
        hosted_zone: Any,
        domain_name: str,
        alternate_names: Optional[List[str]] = None,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.domain_name = domain_name
        request = CertificateRequest(domain_name=domain_name, alternate_names=tuple(alternate_names or ()))

        # Request Public Certificate with DNS Validation
        self.certificate = acm.Certificate(self, f"Certificate-{request.idempotency_token()[:8]}",
            domain_name=domain_name,
            subject_alternative_names=alternate_names or None,
            validation=acm.CertificateValidation.from_dns(hosted_zone),
            certificate_name=f"{domain_name}-{config.name}"
        )

        CfnOutput(self, "CertificateArn", value=self.certificate.certificate_arn)
