"""
Data model of the certificate workflow.

A CertificateRequest produces a fixed set of ValidationChallenges at creation
time. Each challenge is satisfied by exactly one ValidationRecord in the zone,
and the request becomes an IssuedCertificate once the authority has resolved
all of them. Everything here is immutable.
"""
import enum
import hashlib
from dataclasses import dataclass, field
from typing import Optional, Tuple


class ValidationState(enum.Enum):
    PENDING = "PENDING"
    ISSUED = "ISSUED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def terminal(self) -> bool:
        return self is not ValidationState.PENDING


@dataclass(frozen=True)
class WorkflowSettings:
    timeout: float = 30 * 60
    poll_interval: float = 15
    record_ttl: int = 60
    region: str = "us-east-1"


@dataclass(frozen=True)
class CertificateRequest:
    domain_name: str
    alternate_names: Tuple[str, ...] = ()
    validation_method: str = "DNS"
    region: str = "us-east-1"
    arn: Optional[str] = None

    @property
    def domain_set(self) -> Tuple[str, ...]:
        """Every covered name, primary first, without duplicates."""
        names = [self.domain_name]
        for name in self.alternate_names:
            if name not in names:
                names.append(name)
        return tuple(names)

    def idempotency_token(self) -> str:
        # ACM accepts at most 32 word characters
        digest = hashlib.sha256(",".join(sorted(self.domain_set)).encode()).hexdigest()
        return digest[:32]


@dataclass(frozen=True)
class ValidationChallenge:
    domain_name: str
    record_name: str
    record_type: str
    record_value: str


@dataclass(frozen=True)
class ValidationRecord:
    zone_id: str
    domain_name: str
    name: str
    type: str
    value: str
    ttl: int


@dataclass(frozen=True)
class IssuedCertificate:
    """Projection of a request the authority has confirmed. Only this type is bindable."""
    arn: str
    domain_names: Tuple[str, ...] = field(default_factory=tuple)
    region: str = "us-east-1"


@dataclass(frozen=True)
class HostedZone:
    zone_id: str
    name: str
    name_servers: Tuple[str, ...] = ()
