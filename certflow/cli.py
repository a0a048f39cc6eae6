"""
Command line entry point for running the certificate workflow outside of a
CDK deployment.

    certflow nameservers example.com
    certflow issue example.com --alt www.example.com --distribution E123ABC
"""
import logging
from typing import Annotated, List, Optional

import boto3
import typer

from certflow.binder import ApiDomainTarget, DistributionTarget
from certflow.errors import AWS_ERRORS, WorkflowError, translate
from certflow.zone import DomainZoneManager
from certflow.workflow import CertificateWorkflow
from config import load_config

app = typer.Typer(
    help="Issue DNS-validated certificates and bind them to dependent resources",
    no_args_is_help=True,
)


def fail(error: WorkflowError) -> None:
    typer.secho(f"❌ {error}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log every workflow step")] = False,
) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def nameservers(
    domain: Annotated[str, typer.Argument(help="Domain whose zone should exist")],
) -> None:
    """Ensure the public zone exists and print the name servers to delegate to."""
    zones = DomainZoneManager(boto3.client("route53"))
    try:
        zone = zones.ensure_zone(domain)
    except WorkflowError as e:
        fail(e)
    except AWS_ERRORS as e:
        fail(translate(e, domain))

    typer.echo(f"Zone {zone.name} ({zone.zone_id})")
    for server in zone.name_servers:
        typer.echo(f"  {server}")


@app.command()
def issue(
    domain: Annotated[str, typer.Argument(help="Primary domain of the certificate")],
    alt: Annotated[Optional[List[str]], typer.Option("--alt", help="Additional name to cover")] = None,
    api_domain: Annotated[
        Optional[str], typer.Option("--api-domain", help="API Gateway custom domain to bind")
    ] = None,
    rest_api_id: Annotated[
        Optional[str], typer.Option("--rest-api-id", help="REST API mapped under --api-domain")
    ] = None,
    distribution: Annotated[
        Optional[str], typer.Option("--distribution", help="CloudFront distribution id to bind")
    ] = None,
    env: Annotated[str, typer.Option("--env", "-e", help="Environment whose settings apply")] = "dev",
) -> None:
    """Request, validate and bind a certificate. Ctrl-C aborts the wait."""
    settings = load_config(env).workflow_settings()
    workflow = CertificateWorkflow.from_session(settings)

    targets = []
    if api_domain:
        targets.append(ApiDomainTarget(domain_name=api_domain, rest_api_id=rest_api_id))
    if distribution:
        targets.append(DistributionTarget(distribution_id=distribution))

    try:
        result = workflow.issue(domain, alt or [], targets)
    except KeyboardInterrupt:
        workflow.abort()
        typer.secho("⏹️ Aborted, no certificate was bound", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(130)
    except WorkflowError as e:
        fail(e)
    except AWS_ERRORS as e:
        fail(translate(e, domain))

    typer.secho(f"✅ Issued {result.certificate.arn}", fg=typer.colors.GREEN)
    for record in result.records:
        typer.echo(f"  {record.type} {record.name} -> {record.value}")
