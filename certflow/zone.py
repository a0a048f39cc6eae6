import logging
from typing import Optional

import tldextract

from certflow.errors import AWS_ERRORS, InputError, PropagationError, error_message
from certflow.models import HostedZone

logger = logging.getLogger(__name__)

# Bundled public suffix snapshot only, so lookups never reach the network
_extract = tldextract.TLDExtract(suffix_list_urls=())


def zone_name_for(domain_name: str) -> str:
    """Root zone of a name, e.g. 'example.com' for 'api.example.com'."""
    extracted = _extract(domain_name.lstrip("*."))
    if not extracted.domain or not extracted.suffix:
        raise InputError(f"'{domain_name}' has no registrable domain", resource=domain_name)
    return f"{extracted.domain}.{extracted.suffix}"


def _strip_id(zone_id: str) -> str:
    return zone_id.split("/")[-1]


class DomainZoneManager:
    """
    Owns the Route 53 zone that validation records are written to and
    reports the name servers the registrar must delegate to.
    """

    def __init__(self, route53_client):
        self.route53 = route53_client

    def _find(self, zone_name: str) -> Optional[dict]:
        """First public zone named zone_name. Private zones may share the name."""
        params = {"DNSName": zone_name}
        while True:
            try:
                response = self.route53.list_hosted_zones_by_name(**params)
            except AWS_ERRORS as e:
                raise PropagationError(error_message(e), resource=zone_name)

            for zone in response.get("HostedZones", []):
                # Sorted by name, so same-name zones are adjacent
                if zone["Name"].rstrip(".") != zone_name:
                    return None
                if not zone.get("Config", {}).get("PrivateZone"):
                    return zone

            if not response.get("IsTruncated"):
                return None
            params = {"DNSName": response["NextDNSName"], "HostedZoneId": response["NextHostedZoneId"]}

    def _name_servers(self, zone_id: str):
        try:
            response = self.route53.get_hosted_zone(Id=zone_id)
        except AWS_ERRORS as e:
            raise PropagationError(error_message(e), resource=zone_id)
        return tuple(response.get("DelegationSet", {}).get("NameServers", []))

    def lookup(self, domain_name: str) -> HostedZone:
        zone_name = zone_name_for(domain_name)
        zone = self._find(zone_name)
        if zone is None:
            raise PropagationError("hosted zone does not exist", resource=zone_name)

        zone_id = _strip_id(zone["Id"])
        return HostedZone(zone_id=zone_id, name=zone_name, name_servers=self._name_servers(zone_id))

    def ensure_zone(self, domain_name: str) -> HostedZone:
        """Returns the public zone for the domain, creating it when missing."""
        zone_name = zone_name_for(domain_name)
        zone = self._find(zone_name)
        if zone is not None:
            zone_id = _strip_id(zone["Id"])
            return HostedZone(zone_id=zone_id, name=zone_name, name_servers=self._name_servers(zone_id))

        logger.info("Creating hosted zone %s", zone_name)
        try:
            response = self.route53.create_hosted_zone(
                Name=zone_name,
                CallerReference=f"zone-{zone_name}",
                HostedZoneConfig={"Comment": f"Public zone for {zone_name}", "PrivateZone": False},
            )
        except AWS_ERRORS as e:
            raise PropagationError(error_message(e), resource=zone_name)

        name_servers = tuple(response.get("DelegationSet", {}).get("NameServers", []))
        logger.info("Delegate %s to: %s", zone_name, ", ".join(name_servers))
        return HostedZone(
            zone_id=_strip_id(response["HostedZone"]["Id"]),
            name=zone_name,
            name_servers=name_servers,
        )
