import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import boto3

from certflow.binder import DependentResourceBinder, DistributionTarget
from certflow.errors import BindingError, WorkflowError
from certflow.issuer import CertificateIssuer
from certflow.models import (
    CertificateRequest,
    IssuedCertificate,
    ValidationChallenge,
    ValidationRecord,
    WorkflowSettings,
)
from certflow.publisher import ValidationRecordPublisher
from certflow.waiter import ValidationWaiter
from certflow.zone import DomainZoneManager, zone_name_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CertificatePlan:
    domain_name: str
    alternate_names: Tuple[str, ...] = ()
    targets: Tuple = ()


@dataclass
class PipelineResult:
    request: CertificateRequest
    records: List[ValidationRecord]
    certificate: IssuedCertificate


@dataclass
class PlanOutcome:
    result: Optional[PipelineResult] = None
    error: Optional[WorkflowError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CertificateWorkflow:
    """
    Runs zone lookup -> request -> publish -> wait -> bind for one
    certificate at a time. Each step starts only once the previous one has
    produced its output, and any error ends the pipeline before binding.
    """

    def __init__(
        self,
        zones: DomainZoneManager,
        issuer: CertificateIssuer,
        publisher: ValidationRecordPublisher,
        binder: DependentResourceBinder,
        acm_client,
        settings: WorkflowSettings = WorkflowSettings(),
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        self.zones = zones
        self.issuer = issuer
        self.publisher = publisher
        self.binder = binder
        self.acm = acm_client
        self.settings = settings
        self.clock = clock
        self.sleep = sleep
        self.cancel = threading.Event()

    @classmethod
    def from_session(cls, settings: WorkflowSettings, session: Optional[boto3.session.Session] = None):
        session = session or boto3.session.Session()
        acm = session.client("acm", region_name=settings.region)
        route53 = session.client("route53")
        return cls(
            zones=DomainZoneManager(route53),
            issuer=CertificateIssuer(acm, region=settings.region),
            publisher=ValidationRecordPublisher(route53, ttl=settings.record_ttl),
            binder=DependentResourceBinder(
                apigateway_client=session.client("apigateway", region_name=settings.region),
                cloudfront_client=session.client("cloudfront"),
            ),
            acm_client=acm,
            settings=settings,
        )

    def abort(self) -> None:
        """Stops every in-flight wait. Nothing further gets bound."""
        logger.warning("Abort requested, pending validations will not be bound")
        self.cancel.set()

    def _publish(self, challenges: Sequence[ValidationChallenge]) -> List[ValidationRecord]:
        # Alternate names may live in other zones than the primary name
        by_zone: Dict[str, List[ValidationChallenge]] = OrderedDict()
        for challenge in challenges:
            by_zone.setdefault(zone_name_for(challenge.domain_name), []).append(challenge)

        records = []
        for zone_name, zone_challenges in by_zone.items():
            zone = self.zones.lookup(zone_name)
            records.extend(self.publisher.publish(zone.zone_id, zone_challenges))
        return records

    def _check_targets(self, targets: Sequence) -> None:
        for target in targets:
            if isinstance(target, DistributionTarget) and self.settings.region != "us-east-1":
                raise BindingError(
                    f"CloudFront only accepts certificates from us-east-1, workflow region is {self.settings.region}",
                    resource=target.key,
                )

    def _validate(self, domain_name: str, alternate_names: Sequence[str]) -> PipelineResult:
        # Fail before requesting anything when the zone is missing
        self.zones.lookup(domain_name)

        request, challenges = self.issuer.request(domain_name, alternate_names)
        records = self._publish(challenges)

        waiter = ValidationWaiter(
            self.acm, request, self.settings,
            clock=self.clock, sleep=self.sleep, cancel=self.cancel,
        )
        certificate = waiter.wait()
        return PipelineResult(request=request, records=records, certificate=certificate)

    def issue(self, domain_name: str, alternate_names: Sequence[str] = (), targets: Sequence = ()) -> PipelineResult:
        self._check_targets(targets)
        result = self._validate(domain_name, alternate_names)
        for target in targets:
            self.binder.bind(target, result.certificate)
        return result

    def replace(
        self,
        current: IssuedCertificate,
        domain_name: str,
        alternate_names: Sequence[str] = (),
        targets: Sequence = (),
    ) -> PipelineResult:
        """
        Create-before-destroy: acquire new, validate new, repoint targets,
        release old. A failure before repointing leaves the current
        certificate bound and untouched.
        """
        self._check_targets(targets)
        result = self._validate(domain_name, alternate_names)

        for target in targets:
            self.binder.bind(target, result.certificate)

        if result.certificate.arn != current.arn:
            self.issuer.release(current.arn)
        return result

    def issue_all(self, plans: Dict[str, CertificatePlan]) -> Dict[str, PlanOutcome]:
        """Runs independent plans side by side; one failure does not stop the others."""
        if not plans:
            return {}

        def run(plan: CertificatePlan) -> PlanOutcome:
            try:
                return PlanOutcome(result=self.issue(plan.domain_name, plan.alternate_names, plan.targets))
            except WorkflowError as e:
                logger.warning("Certificate for %s failed: %s", plan.domain_name, e)
                return PlanOutcome(error=e)
            except Exception as e:
                logger.exception("Certificate for %s failed unexpectedly", plan.domain_name)
                return PlanOutcome(error=WorkflowError(str(e) or type(e).__name__, resource=plan.domain_name))

        with ThreadPoolExecutor(max_workers=len(plans)) as executor:
            futures = {name: executor.submit(run, plan) for name, plan in plans.items()}
            return {name: future.result() for name, future in futures.items()}
