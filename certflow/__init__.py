"""Certificate issuance and DNS validation workflow on ACM and Route 53."""
from certflow.binder import ApiDomainTarget, DependentResourceBinder, DistributionTarget
from certflow.errors import (
    BindingError,
    InputError,
    PropagationError,
    ValidationAbortedError,
    ValidationFailedError,
    ValidationTimeoutError,
    WorkflowError,
)
from certflow.issuer import CertificateIssuer
from certflow.models import (
    CertificateRequest,
    HostedZone,
    IssuedCertificate,
    ValidationChallenge,
    ValidationRecord,
    ValidationState,
    WorkflowSettings,
)
from certflow.publisher import ValidationRecordPublisher
from certflow.waiter import ValidationWaiter
from certflow.workflow import CertificatePlan, CertificateWorkflow, PipelineResult, PlanOutcome
from certflow.zone import DomainZoneManager
