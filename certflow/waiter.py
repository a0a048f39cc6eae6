"""
Blocks a certificate pipeline until the authority reaches a verdict.

    PENDING --poll--> ISSUED | FAILED | TIMED_OUT

FAILED means the authority explicitly rejected a validation (for instance a
record value mismatch). TIMED_OUT means nothing terminal was reported before
the ceiling. The two are kept apart so callers can tell a wrong record from a
slow one. The waiter only reads from the authority.
"""
import logging
import threading
import time
from typing import Callable, Optional, Tuple

from certflow.errors import (
    AWS_ERRORS,
    ValidationAbortedError,
    ValidationFailedError,
    ValidationTimeoutError,
    translate,
)
from certflow.models import (
    CertificateRequest,
    IssuedCertificate,
    ValidationState,
    WorkflowSettings,
)

logger = logging.getLogger(__name__)

# Certificate statuses after which validation can never succeed
REJECTED_STATUSES = {"FAILED", "REVOKED", "INACTIVE", "EXPIRED"}


class ValidationWaiter:

    def __init__(
        self,
        acm_client,
        request: CertificateRequest,
        settings: WorkflowSettings = WorkflowSettings(),
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], object]] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.acm = acm_client
        self.request = request
        self.timeout = settings.timeout
        self.poll_interval = settings.poll_interval
        self.clock = clock
        self.cancel = cancel or threading.Event()
        # Waiting on the cancel event lets an abort interrupt the sleep
        self.sleep = sleep or self.cancel.wait

        self.state = ValidationState.PENDING
        self.started: Optional[float] = None
        self.failed: Tuple[str, ...] = ()
        self.pending: Tuple[str, ...] = request.domain_set
        self.reason: Optional[str] = None

    def _transition(self, state: ValidationState) -> ValidationState:
        if state is not self.state:
            log = logger.info if state is ValidationState.ISSUED else logger.warning
            log("Certificate %s: %s -> %s", self.request.arn, self.state.value, state.value)
            self.state = state
        return state

    def elapsed(self) -> float:
        if self.started is None:
            return 0.0
        return self.clock() - self.started

    def step(self) -> ValidationState:
        """Polls the authority once and advances the state machine."""
        if self.state.terminal:
            return self.state
        if self.cancel.is_set():
            raise ValidationAbortedError("validation wait aborted by operator", resource=self.request.arn)
        if self.started is None:
            self.started = self.clock()

        try:
            response = self.acm.describe_certificate(CertificateArn=self.request.arn)
        except AWS_ERRORS as e:
            raise translate(e, self.request.arn)

        certificate = response["Certificate"]
        status = certificate.get("Status", "PENDING_VALIDATION")
        options = certificate.get("DomainValidationOptions", [])

        self.failed = tuple(o["DomainName"] for o in options if o.get("ValidationStatus") == "FAILED")
        self.pending = tuple(o["DomainName"] for o in options if o.get("ValidationStatus") != "SUCCESS")
        self.reason = certificate.get("FailureReason")

        if status == "ISSUED":
            self.pending = ()
            return self._transition(ValidationState.ISSUED)
        if status in REJECTED_STATUSES or self.failed:
            return self._transition(ValidationState.FAILED)
        if status == "VALIDATION_TIMED_OUT" or self.elapsed() >= self.timeout:
            return self._transition(ValidationState.TIMED_OUT)
        return self.state

    def issued(self) -> IssuedCertificate:
        return IssuedCertificate(
            arn=self.request.arn,
            domain_names=self.request.domain_set,
            region=self.request.region,
        )

    def wait(self) -> IssuedCertificate:
        """Polls until a terminal state; returns the issued certificate or raises."""
        logger.info(
            "Waiting up to %ss for %s (%s)",
            self.timeout, self.request.arn, ", ".join(self.request.domain_set),
        )
        while True:
            state = self.step()

            if state is ValidationState.ISSUED:
                return self.issued()
            if state is ValidationState.FAILED:
                domains = self.failed or self.request.domain_set
                raise ValidationFailedError(
                    f"validation rejected for {', '.join(domains)}"
                    + (f" ({self.reason})" if self.reason else ""),
                    resource=self.request.arn,
                    domains=domains,
                )
            if state is ValidationState.TIMED_OUT:
                pending = self.pending or self.request.domain_set
                raise ValidationTimeoutError(
                    f"no verdict after {self.timeout}s, still pending: {', '.join(pending)}",
                    resource=self.request.arn,
                    pending=pending,
                )

            remaining = self.timeout - self.elapsed()
            self.sleep(max(0.0, min(self.poll_interval, remaining)))
