import aws_cdk as cdk
from config import EnvConfig, get_config
from stacks.zone_stack import ZoneStack
from stacks.certificate_stack import CertificateStack
from stacks.site_stack import SiteStack
from stacks.contact_api_stack import ContactApiStack


def build(app: cdk.App, config: EnvConfig) -> dict:
    """Adds every stack of one environment to the app, keyed by role."""
    main_env = cdk.Environment(account=config.account, region=config.region)

    # =================================================================
    # 1. ZONE STACK (Primary Region)
    # =================================================================
    # Emits the name servers that must be delegated at the registrar.
    zone_stack = ZoneStack(
        app, f"SiteZone-{config.name}",
        config=config,
        env=main_env
    )

    # =================================================================
    # 2. CERTIFICATE STACKS
    # =================================================================
    # ACM Certificates for CloudFront must be created in us-east-1.
    cert_env = cdk.Environment(account=config.account, region="us-east-1")
    site_cert_stack = CertificateStack(
        app, f"SiteCert-{config.name}",
        config=config,
        hosted_zone=zone_stack.hosted_zone,
        domain_name=config.domain_name,
        alternate_names=config.alternate_names,
        env=cert_env,
        cross_region_references=True
    )

    # The API custom domain is regional, so its certificate lives next to it.
    api_cert_stack = CertificateStack(
        app, f"ApiCert-{config.name}",
        config=config,
        hosted_zone=zone_stack.hosted_zone,
        domain_name=config.api_domain_name,
        env=main_env
    )

    # =================================================================
    # 3. SITE STACK (Primary Region)
    # =================================================================
    # Deploys the S3 bucket and the CloudFront distribution.
    site_stack = SiteStack(
        app, f"Site-{config.name}",
        config=config,
        certificate=site_cert_stack.certificate,
        hosted_zone=zone_stack.hosted_zone,
        env=main_env,
        cross_region_references=True
    )

    # =================================================================
    # 4. CONTACT API STACK (Primary Region)
    # =================================================================
    # Deploys the contact Lambda behind a rate limited REST API.
    contact_api_stack = ContactApiStack(
        app, f"ContactApi-{config.name}",
        config=config,
        certificate=api_cert_stack.certificate,
        hosted_zone=zone_stack.hosted_zone,
        env=main_env
    )

    # =================================================================
    # DEPLOYMENT DEPENDENCIES
    # =================================================================
    # zone -> certificate (validated) -> bound resource. The two certificate
    # chains are independent and may deploy in parallel.
    site_cert_stack.add_dependency(zone_stack)
    api_cert_stack.add_dependency(zone_stack)
    site_stack.add_dependency(site_cert_stack)
    contact_api_stack.add_dependency(api_cert_stack)

    return {
        "zone": zone_stack,
        "site_cert": site_cert_stack,
        "api_cert": api_cert_stack,
        "site": site_stack,
        "api": contact_api_stack,
    }


if __name__ == "__main__":
    app = cdk.App()
    build(app, get_config(app))
    app.synth()
