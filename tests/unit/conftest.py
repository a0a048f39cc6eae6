import hashlib
import itertools

import pytest
from botocore.exceptions import ClientError


def client_error(code, message="error", operation="Operation"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def _token(text):
    return hashlib.md5(text.encode()).hexdigest()[:12]


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRoute53:

    def __init__(self):
        self.zones = {}
        self.records = {}
        self.batches = []
        self.deny_writes = False
        self.page_size = 100
        self.listings = 0
        self._ids = itertools.count(1)

    def add_zone(self, name, private=False):
        zone_id = f"Z{next(self._ids):04d}"
        self.zones[zone_id] = {
            "name": name,
            "private": private,
            "name_servers": [f"ns-{i}.awsdns-{zone_id}.net" for i in range(1, 5)],
        }
        return zone_id

    def record_value(self, name, type_="CNAME"):
        for (_, record_name, record_type), (value, _) in self.records.items():
            if record_name == name and record_type == type_:
                return value
        return None

    def list_hosted_zones_by_name(self, DNSName=None, HostedZoneId=None, MaxItems="100"):
        self.listings += 1
        limit = min(int(MaxItems), self.page_size)
        start = ((DNSName or "").rstrip("."), HostedZoneId or "")
        ordered = sorted((zone["name"], zone_id) for zone_id, zone in self.zones.items())
        listed = [key for key in ordered if key >= start]
        page, rest = listed[:limit], listed[limit:]

        response = {
            "HostedZones": [
                {
                    "Id": f"/hostedzone/{zone_id}",
                    "Name": f"{name}.",
                    "Config": {"PrivateZone": self.zones[zone_id]["private"]},
                }
                for name, zone_id in page
            ],
            "IsTruncated": bool(rest),
        }
        if rest:
            response["NextDNSName"] = f"{rest[0][0]}."
            response["NextHostedZoneId"] = rest[0][1]
        return response

    def get_hosted_zone(self, Id):
        zone_id = Id.split("/")[-1]
        if zone_id not in self.zones:
            raise client_error("NoSuchHostedZone", f"No hosted zone found with ID: {zone_id}")
        zone = self.zones[zone_id]
        return {
            "HostedZone": {"Id": f"/hostedzone/{zone_id}", "Name": f"{zone['name']}."},
            "DelegationSet": {"NameServers": list(zone["name_servers"])},
        }

    def create_hosted_zone(self, Name, CallerReference, HostedZoneConfig=None):
        zone_id = self.add_zone(Name)
        return {
            "HostedZone": {"Id": f"/hostedzone/{zone_id}", "Name": f"{Name}."},
            "DelegationSet": {"NameServers": list(self.zones[zone_id]["name_servers"])},
        }

    def change_resource_record_sets(self, HostedZoneId, ChangeBatch):
        if self.deny_writes:
            raise client_error("AccessDenied", "User is not authorized to perform: route53:ChangeResourceRecordSets")
        if HostedZoneId not in self.zones:
            raise client_error("NoSuchHostedZone", f"No hosted zone found with ID: {HostedZoneId}")

        self.batches.append(ChangeBatch)
        for change in ChangeBatch["Changes"]:
            record = change["ResourceRecordSet"]
            key = (HostedZoneId, record["Name"], record["Type"])
            if change["Action"] == "CREATE" and key in self.records:
                raise client_error("InvalidChangeBatch", "Tried to create resource record set but it already exists")
            self.records[key] = (record["ResourceRecords"][0]["Value"], record["TTL"])
        return {"ChangeInfo": {"Status": "PENDING"}}


class FakeAcm:
    """
    Certificate authority that validates against a FakeRoute53.

    A domain validates once its record holds the expected value for
    `propagation_polls` consecutive reads. A record holding a wrong value is
    rejected when `reject_mismatch` is set, otherwise it stays pending.
    """

    def __init__(self, route53, propagation_polls=1, reject_mismatch=True, records_after=0):
        self.route53 = route53
        self.propagation_polls = propagation_polls
        self.reject_mismatch = reject_mismatch
        self.records_after = records_after
        self.certificates = {}
        self.tokens = {}
        self.requests = []
        self.deleted = []
        self.request_error = None
        self.never_validate = set()
        self._ids = itertools.count(1)

    def expected_record(self, domain):
        base = domain[2:] if domain.startswith("*.") else domain
        return f"_{_token(base)}.{base}.", f"_{_token('value-' + base)}.acm-validations.aws."

    def request_certificate(self, DomainName, ValidationMethod, IdempotencyToken=None, SubjectAlternativeNames=None):
        self.requests.append(
            {"DomainName": DomainName, "SubjectAlternativeNames": SubjectAlternativeNames, "Token": IdempotencyToken}
        )
        if self.request_error is not None:
            raise self.request_error
        if IdempotencyToken in self.tokens:
            return {"CertificateArn": self.tokens[IdempotencyToken]}

        arn = f"arn:aws:acm:us-east-1:123456789012:certificate/cert-{next(self._ids)}"
        self.tokens[IdempotencyToken] = arn
        self.certificates[arn] = {
            "domains": list(SubjectAlternativeNames or [DomainName]),
            "status": "PENDING_VALIDATION",
            "validation": {},
            "reads": 0,
            "seen": {},
        }
        return {"CertificateArn": arn}

    def _advance(self, cert):
        if cert["status"] != "PENDING_VALIDATION":
            return
        for domain in cert["domains"]:
            if cert["validation"].get(domain) in ("SUCCESS", "FAILED") or domain in self.never_validate:
                continue
            name, value = self.expected_record(domain)
            published = self.route53.record_value(name)
            if published is None:
                continue
            if published != value:
                if self.reject_mismatch:
                    cert["validation"][domain] = "FAILED"
                continue
            cert["seen"][domain] = cert["seen"].get(domain, 0) + 1
            if cert["seen"][domain] >= self.propagation_polls:
                cert["validation"][domain] = "SUCCESS"

        statuses = [cert["validation"].get(d, "PENDING_VALIDATION") for d in cert["domains"]]
        if "FAILED" in statuses:
            cert["status"] = "FAILED"
            cert["reason"] = "OTHER"
        elif all(s == "SUCCESS" for s in statuses):
            cert["status"] = "ISSUED"

    def describe_certificate(self, CertificateArn):
        if CertificateArn not in self.certificates:
            raise client_error("ResourceNotFoundException", f"Could not find certificate {CertificateArn}")
        cert = self.certificates[CertificateArn]
        cert["reads"] += 1
        self._advance(cert)

        options = []
        for domain in cert["domains"]:
            option = {
                "DomainName": domain,
                "ValidationMethod": "DNS",
                "ValidationStatus": cert["validation"].get(domain, "PENDING_VALIDATION"),
            }
            if cert["reads"] > self.records_after:
                name, value = self.expected_record(domain)
                option["ResourceRecord"] = {"Name": name, "Type": "CNAME", "Value": value}
            options.append(option)

        certificate = {"CertificateArn": CertificateArn, "Status": cert["status"], "DomainValidationOptions": options}
        if "reason" in cert:
            certificate["FailureReason"] = cert["reason"]
        return {"Certificate": certificate}

    def delete_certificate(self, CertificateArn):
        self.deleted.append(CertificateArn)
        self.certificates.pop(CertificateArn, None)


class ScriptedAcm:
    """Replays describe_certificate responses; the last one repeats."""

    def __init__(self, *certificates):
        self.responses = list(certificates)
        self.calls = 0

    def describe_certificate(self, CertificateArn):
        index = min(self.calls, len(self.responses) - 1)
        self.calls += 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return {"Certificate": dict(response, CertificateArn=CertificateArn)}


class FakeApiGateway:

    def __init__(self):
        self.domains = {}
        self.mappings = []
        self.calls = []

    def get_domain_name(self, domainName):
        self.calls.append(("get_domain_name", domainName))
        if domainName not in self.domains:
            raise client_error("NotFoundException", "Invalid domain name identifier specified")
        return dict(self.domains[domainName])

    def create_domain_name(self, domainName, regionalCertificateArn, endpointConfiguration, securityPolicy):
        self.calls.append(("create_domain_name", domainName))
        self.domains[domainName] = {"domainName": domainName, "regionalCertificateArn": regionalCertificateArn}

    def update_domain_name(self, domainName, patchOperations):
        self.calls.append(("update_domain_name", domainName))
        for operation in patchOperations:
            if operation["path"] == "/regionalCertificateArn":
                self.domains[domainName]["regionalCertificateArn"] = operation["value"]

    def get_base_path_mappings(self, domainName):
        self.calls.append(("get_base_path_mappings", domainName))
        return {
            "items": [
                {"basePath": "(none)", "restApiId": api_id, "stage": stage}
                for name, api_id, stage in self.mappings
                if name == domainName
            ]
        }

    def create_base_path_mapping(self, domainName, restApiId, stage):
        self.calls.append(("create_base_path_mapping", domainName))
        self.mappings.append((domainName, restApiId, stage))


class FakeCloudFront:

    def __init__(self):
        self.distributions = {}

    def add_distribution(self, distribution_id):
        self.distributions[distribution_id] = {
            "etag": "E1",
            "config": {"Aliases": {"Quantity": 0}, "ViewerCertificate": {"CloudFrontDefaultCertificate": True}},
        }

    def certificate_of(self, distribution_id):
        return self.distributions[distribution_id]["config"]["ViewerCertificate"].get("ACMCertificateArn")

    def get_distribution_config(self, Id):
        if Id not in self.distributions:
            raise client_error("NoSuchDistribution", "The specified distribution does not exist.")
        distribution = self.distributions[Id]
        return {"DistributionConfig": dict(distribution["config"]), "ETag": distribution["etag"]}

    def update_distribution(self, Id, IfMatch, DistributionConfig):
        distribution = self.distributions[Id]
        if IfMatch != distribution["etag"]:
            raise client_error("PreconditionFailed", "The precondition given in one or more of the request-header fields evaluated to false.")
        distribution["config"] = DistributionConfig
        distribution["etag"] = f"E{int(distribution['etag'][1:]) + 1}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def route53():
    fake = FakeRoute53()
    fake.add_zone("example.com")
    return fake


@pytest.fixture
def acm(route53):
    return FakeAcm(route53)


@pytest.fixture
def apigateway():
    return FakeApiGateway()


@pytest.fixture
def cloudfront():
    fake = FakeCloudFront()
    fake.add_distribution("E2SITE")
    return fake
