import os
from typing import List, Optional
from dotenv import load_dotenv
from aws_cdk import RemovalPolicy

from certflow.models import WorkflowSettings

# Load environment variables from a .env file
load_dotenv()

class EnvConfig:
    """
    Stores environment-specific configuration for the CDK stacks and the
    certificate workflow.
    """
    def __init__(
        self,
        env_name: str,
        account: str,
        region: str,
        domain: str,
        contact_sender: str,
        contact_recipient: str,
        alternate_names: Optional[List[str]] = None,
        api_subdomain: str = "api",
        zone_exists: bool = False,
        validation_timeout_minutes: int = 30,
        validation_poll_seconds: int = 15,
        validation_record_ttl: int = 60,
        api_quota_per_day: int = 500,
        api_rate_limit: int = 5,
        api_burst_limit: int = 10
    ):
        self.name = env_name
        self.account = account
        self.region = region
        self.domain_name = domain
        self.alternate_names = alternate_names or []
        self.api_domain_name = f"{api_subdomain}.{domain}"
        self.zone_exists = zone_exists

        # Contact form email routing
        self.contact_sender = contact_sender
        self.contact_recipient = contact_recipient

        # Certificate validation ceiling and record cache lifetime
        self.validation_timeout_minutes = validation_timeout_minutes
        self.validation_poll_seconds = validation_poll_seconds
        self.validation_record_ttl = validation_record_ttl

        # Usage plan limits for the contact API
        self.api_quota_per_day = api_quota_per_day
        self.api_rate_limit = api_rate_limit
        self.api_burst_limit = api_burst_limit

        # Data Lifecycle Policy:
        # In 'prod', we retain resources and disable auto-delete to prevent data loss.
        # In other environments, we clean up to save costs.
        if env_name == 'prod':
            self.removal_policy = RemovalPolicy.RETAIN
            self.auto_delete_objects = False
        else:
            self.removal_policy = RemovalPolicy.DESTROY
            self.auto_delete_objects = True

    def workflow_settings(self) -> WorkflowSettings:
        """Settings consumed by the explicit certificate workflow."""
        return WorkflowSettings(
            timeout=self.validation_timeout_minutes * 60,
            poll_interval=self.validation_poll_seconds,
            record_ttl=self.validation_record_ttl,
            region=self.region
        )

def get_required_env(key: str) -> str:
    """
    Retrieves a required environment variable or raises a RuntimeError if missing.
    """
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"❌ MISSING CONFIG: Required environment variable '{key}' not found in .env")
    return value

def get_int_env(key: str, default: int) -> int:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"❌ INVALID CONFIG: '{key}' must be an integer, got '{value}'")

def get_list_env(key: str) -> List[str]:
    value = os.getenv(key) or ""
    return [item.strip() for item in value.split(",") if item.strip()]

def load_config(env_name: str = "dev") -> EnvConfig:
    """
    Builds the EnvConfig for an environment name straight from the process
    environment. Used by the certflow CLI, which runs outside of CDK.
    """
    prefix = env_name.upper()

    # Load Mandatory Variables
    account = get_required_env(f"{prefix}_ACCOUNT")
    region = get_required_env(f"{prefix}_REGION")
    domain = get_required_env(f"{prefix}_DOMAIN_NAME")
    contact_sender = get_required_env("CONTACT_SENDER")
    contact_recipient = get_required_env("CONTACT_RECIPIENT")

    # Load Optional Variables
    zone_exists = os.getenv(f"{prefix}_ZONE_EXISTS", "false").lower() in ("1", "true", "yes")

    return EnvConfig(
        env_name=env_name,
        account=account,
        region=region,
        domain=domain,
        contact_sender=contact_sender,
        contact_recipient=contact_recipient,
        alternate_names=get_list_env(f"{prefix}_ALTERNATE_NAMES"),
        api_subdomain=os.getenv(f"{prefix}_API_SUBDOMAIN") or "api",
        zone_exists=zone_exists,
        validation_timeout_minutes=get_int_env(f"{prefix}_VALIDATION_TIMEOUT_MINUTES", 30),
        validation_poll_seconds=get_int_env(f"{prefix}_VALIDATION_POLL_SECONDS", 15),
        validation_record_ttl=get_int_env(f"{prefix}_VALIDATION_RECORD_TTL", 60),
        api_quota_per_day=get_int_env(f"{prefix}_API_QUOTA_PER_DAY", 500),
        api_rate_limit=get_int_env(f"{prefix}_API_RATE_LIMIT", 5),
        api_burst_limit=get_int_env(f"{prefix}_API_BURST_LIMIT", 10)
    )

def get_config(scope) -> EnvConfig:
    """
    Factory function to generate the EnvConfig object based on CDK context.
    Usage: cdk deploy -c env=prod
    """
    # Default to 'dev' environment if no context is provided
    env_name = scope.node.try_get_context("env") or "dev"

    print(f"🔍 Initializing CDK Infrastructure for environment: {env_name.upper()}")

    return load_config(env_name)
