import logging
from typing import Iterable, List

from certflow.errors import AWS_ERRORS, PropagationError, error_message
from certflow.models import ValidationChallenge, ValidationRecord

logger = logging.getLogger(__name__)


def unique_challenges(challenges: Iterable[ValidationChallenge]) -> List[ValidationChallenge]:
    """
    One challenge per domain name. ACM returns the same CNAME for a wildcard
    and its apex, so record names are deduplicated as well.
    """
    seen_domains = set()
    seen_records = set()
    unique = []
    for challenge in challenges:
        record_key = (challenge.record_name.lower(), challenge.record_type)
        if challenge.domain_name in seen_domains or record_key in seen_records:
            continue
        seen_domains.add(challenge.domain_name)
        seen_records.add(record_key)
        unique.append(challenge)
    return unique


class ValidationRecordPublisher:
    """Writes validation challenges into the zone with UPSERT semantics."""

    def __init__(self, route53_client, ttl: int = 60):
        self.route53 = route53_client
        self.ttl = ttl

    def publish(self, zone_id: str, challenges: Iterable[ValidationChallenge]) -> List[ValidationRecord]:
        records = [
            ValidationRecord(
                zone_id=zone_id,
                domain_name=challenge.domain_name,
                name=challenge.record_name,
                type=challenge.record_type,
                value=challenge.record_value,
                ttl=self.ttl,
            )
            for challenge in unique_challenges(challenges)
        ]
        if not records:
            return records

        changes = [
            {
                # UPSERT so a rerun over records from a previous apply succeeds
                "Action": "UPSERT",
                "ResourceRecordSet": {
                    "Name": record.name,
                    "Type": record.type,
                    "TTL": record.ttl,
                    "ResourceRecords": [{"Value": record.value}],
                },
            }
            for record in records
        ]

        logger.info("Publishing %d validation record(s) to zone %s", len(records), zone_id)
        try:
            self.route53.change_resource_record_sets(
                HostedZoneId=zone_id,
                ChangeBatch={"Comment": "ACM DNS validation", "Changes": changes},
            )
        except AWS_ERRORS as e:
            raise PropagationError(error_message(e), resource=zone_id)
        return records
