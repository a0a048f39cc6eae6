import logging
from dataclasses import dataclass
from typing import Dict, Optional

from certflow.errors import AWS_ERRORS, BindingError, error_code, translate
from certflow.models import IssuedCertificate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiDomainTarget:
    """Regional API Gateway custom domain, optionally mapped to a REST API stage."""
    domain_name: str
    rest_api_id: Optional[str] = None
    stage: str = "prod"

    @property
    def key(self) -> str:
        return f"apigateway:{self.domain_name}"


@dataclass(frozen=True)
class DistributionTarget:
    """CloudFront distribution viewer certificate."""
    distribution_id: str

    @property
    def key(self) -> str:
        return f"cloudfront:{self.distribution_id}"


class DependentResourceBinder:
    """
    Points API domains and CDN distributions at an issued certificate.

    Only IssuedCertificate values are accepted. Anything else is refused
    before a single service call is made.
    """

    def __init__(self, apigateway_client=None, cloudfront_client=None):
        self.apigateway = apigateway_client
        self.cloudfront = cloudfront_client
        self._bindings: Dict[str, str] = {}

    def bound_to(self, target) -> Optional[str]:
        return self._bindings.get(target.key)

    def bind(self, target, certificate) -> None:
        if not isinstance(certificate, IssuedCertificate):
            raise BindingError(
                f"refusing to bind {type(certificate).__name__}, only issued certificates are bindable",
                resource=target.key,
            )

        if isinstance(target, ApiDomainTarget):
            self._bind_api_domain(target, certificate)
        elif isinstance(target, DistributionTarget):
            self._bind_distribution(target, certificate)
        else:
            raise BindingError(f"unsupported binding target {target!r}")

        logger.info("Bound %s to %s", target.key, certificate.arn)
        self._bindings[target.key] = certificate.arn

    def _bind_api_domain(self, target: ApiDomainTarget, certificate: IssuedCertificate) -> None:
        try:
            self.apigateway.get_domain_name(domainName=target.domain_name)
        except AWS_ERRORS as e:
            if error_code(e) != "NotFoundException":
                raise translate(e, target.key)
            self._create_api_domain(target, certificate)
        else:
            self._update_api_domain(target, certificate)

        if target.rest_api_id:
            self._ensure_mapping(target)

    def _create_api_domain(self, target: ApiDomainTarget, certificate: IssuedCertificate) -> None:
        try:
            self.apigateway.create_domain_name(
                domainName=target.domain_name,
                regionalCertificateArn=certificate.arn,
                endpointConfiguration={"types": ["REGIONAL"]},
                securityPolicy="TLS_1_2",
            )
        except AWS_ERRORS as e:
            raise translate(e, target.key)

    def _update_api_domain(self, target: ApiDomainTarget, certificate: IssuedCertificate) -> None:
        try:
            self.apigateway.update_domain_name(
                domainName=target.domain_name,
                patchOperations=[
                    {"op": "replace", "path": "/regionalCertificateArn", "value": certificate.arn}
                ],
            )
        except AWS_ERRORS as e:
            raise translate(e, target.key)

    def _ensure_mapping(self, target: ApiDomainTarget) -> None:
        try:
            response = self.apigateway.get_base_path_mappings(domainName=target.domain_name)
            for mapping in response.get("items", []):
                if mapping.get("restApiId") == target.rest_api_id and mapping.get("stage") == target.stage:
                    return

            logger.info("Mapping %s to API %s (%s)", target.domain_name, target.rest_api_id, target.stage)
            self.apigateway.create_base_path_mapping(
                domainName=target.domain_name,
                restApiId=target.rest_api_id,
                stage=target.stage,
            )
        except AWS_ERRORS as e:
            raise translate(e, target.key)

    def _bind_distribution(self, target: DistributionTarget, certificate: IssuedCertificate) -> None:
        if certificate.region != "us-east-1":
            raise BindingError(
                f"CloudFront only accepts certificates from us-east-1, got {certificate.region}",
                resource=target.key,
            )

        try:
            response = self.cloudfront.get_distribution_config(Id=target.distribution_id)
            config = response["DistributionConfig"]
            config["ViewerCertificate"] = {
                "ACMCertificateArn": certificate.arn,
                "SSLSupportMethod": "sni-only",
                "MinimumProtocolVersion": "TLSv1.2_2021",
                "CloudFrontDefaultCertificate": False,
            }
            self.cloudfront.update_distribution(
                Id=target.distribution_id,
                IfMatch=response["ETag"],
                DistributionConfig=config,
            )
        except AWS_ERRORS as e:
            raise translate(e, target.key)
