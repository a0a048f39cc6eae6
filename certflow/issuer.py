import logging
import re
import time
from dataclasses import replace
from typing import Callable, Iterable, List, Tuple

from certflow.errors import AWS_ERRORS, InputError, PropagationError, translate
from certflow.models import CertificateRequest, ValidationChallenge
from certflow.zone import zone_name_for

logger = logging.getLogger(__name__)

LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")


def validate_domain(name: str) -> str:
    """Returns the normalized name or raises InputError."""
    normalized = name.strip().lower().rstrip(".")
    if not normalized or len(normalized) > 253:
        raise InputError("domain name is empty or too long", resource=name)

    labels = normalized.split(".")
    if len(labels) < 2:
        raise InputError("domain name needs at least two labels", resource=name)
    for index, label in enumerate(labels):
        if label == "*" and index == 0:
            continue
        if not LABEL.match(label):
            raise InputError(f"invalid label '{label}'", resource=name)

    # Raises InputError for names outside any public suffix
    zone_name_for(normalized)
    return normalized


class CertificateIssuer:
    """
    Requests DNS-validated certificates from ACM.

    Requests carry an idempotency token derived from the domain set, so
    issuing again with the same names returns the same certificate and the
    same challenges instead of a duplicate.
    """

    def __init__(
        self,
        acm_client,
        region: str = "us-east-1",
        attempts: int = 10,
        delay: float = 2,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.acm = acm_client
        self.region = region
        self.attempts = attempts
        self.delay = delay
        self.sleep = sleep

    def request(
        self, domain_name: str, alternate_names: Iterable[str] = ()
    ) -> Tuple[CertificateRequest, List[ValidationChallenge]]:
        request = CertificateRequest(
            domain_name=validate_domain(domain_name),
            alternate_names=tuple(validate_domain(name) for name in alternate_names),
            region=self.region,
        )

        params = {
            "DomainName": request.domain_name,
            "ValidationMethod": request.validation_method,
            "IdempotencyToken": request.idempotency_token(),
        }
        if len(request.domain_set) > 1:
            params["SubjectAlternativeNames"] = list(request.domain_set)

        logger.info("Requesting certificate for %s", ", ".join(request.domain_set))
        try:
            response = self.acm.request_certificate(**params)
        except AWS_ERRORS as e:
            raise translate(e, request.domain_name)

        request = replace(request, arn=response["CertificateArn"])
        return request, self.challenges(request)

    def challenges(self, request: CertificateRequest) -> List[ValidationChallenge]:
        """
        Reads the DNS challenges of a request. ACM fills in the resource
        records shortly after the request, so a few reads may be needed.
        """
        for attempt in range(self.attempts):
            try:
                response = self.acm.describe_certificate(CertificateArn=request.arn)
            except AWS_ERRORS as e:
                raise translate(e, request.arn)

            options = response["Certificate"].get("DomainValidationOptions", [])
            ready = [option for option in options if "ResourceRecord" in option]
            covered = {option["DomainName"] for option in ready}
            if ready and covered.issuperset(request.domain_set):
                return [
                    ValidationChallenge(
                        domain_name=option["DomainName"],
                        record_name=option["ResourceRecord"]["Name"],
                        record_type=option["ResourceRecord"]["Type"],
                        record_value=option["ResourceRecord"]["Value"],
                    )
                    for option in ready
                ]

            if attempt < self.attempts - 1:
                self.sleep(self.delay)

        raise PropagationError("validation records were not provided by the authority", resource=request.arn)

    def release(self, arn: str) -> None:
        logger.info("Releasing certificate %s", arn)
        try:
            self.acm.delete_certificate(CertificateArn=arn)
        except AWS_ERRORS as e:
            raise translate(e, arn)
