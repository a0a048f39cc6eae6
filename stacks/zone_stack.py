from aws_cdk import (
    Stack,
    CfnOutput,
    Fn,
    aws_route53 as route53
)
from constructs import Construct

from certflow.zone import zone_name_for

class ZoneStack(Stack):
    """
    Owns the public Route53 zone of the site domain.

    On the first deploy the zone is created and its name servers are emitted;
    they must be configured at the registrar before any certificate can
    validate. Set <ENV>_ZONE_EXISTS=true to reuse a zone that already exists.
    """
    def __init__(self, scope: Construct, construct_id: str, config, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # 1. Extract the Root Zone (e.g., 'example.com' from 'sub.example.com')
        self.zone_name = zone_name_for(config.domain_name)

        if config.zone_exists:
            # 2a. Look up the existing Hosted Zone in Route53
            self.hosted_zone = route53.HostedZone.from_lookup(self, "HostedZone",
                domain_name=self.zone_name
            )
            return

        # 2b. Create the zone and hand its delegation set to the operator
        self.hosted_zone = route53.PublicHostedZone(self, "HostedZone",
            zone_name=self.zone_name,
            comment=f"Public zone for {self.zone_name} ({config.name})"
        )

        CfnOutput(self, "HostedZoneId", value=self.hosted_zone.hosted_zone_id)
        CfnOutput(self, "NameServers",
            value=Fn.join(", ", self.hosted_zone.hosted_zone_name_servers),
            description="Configure these name servers at the domain registrar"
        )
