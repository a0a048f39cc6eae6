from typing import Any
from aws_cdk import (
    Stack,
    CfnOutput,
    aws_s3 as s3,
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
    aws_route53 as route53,
    aws_route53_targets as targets
)
from constructs import Construct

class SiteStack(Stack):
    """
    Deploys the static site hosting:
    1. Private S3 bucket holding the site build.
    2. CloudFront Distribution bound to the issued site certificate.
    3. Route53 alias records for the site domain and its alternate names.
    """
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: Any,
        certificate: Any,
        hosted_zone: Any,
        **kwargs
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # =================================================================
        # 1. SITE S3 BUCKET
        # =================================================================
        self.site_bucket = s3.Bucket(self, "SiteBucket",
            bucket_name=f"site-{config.name}-{self.account}",
            encryption=s3.BucketEncryption.S3_MANAGED,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            removal_policy=config.removal_policy,
            auto_delete_objects=config.auto_delete_objects
        )

        # =================================================================
        # 2. CLOUDFRONT DISTRIBUTION
        # =================================================================
        domain_names = [config.domain_name] + list(config.alternate_names)

        self.distribution = cloudfront.Distribution(self, "SiteDist",
            default_root_object="index.html",
            price_class=cloudfront.PriceClass.PRICE_CLASS_100,
            # Only an issued certificate reaches this point: the certificate
            # stack completes after DNS validation.
            certificate=certificate,
            domain_names=domain_names,
            default_behavior=cloudfront.BehaviorOptions(
                origin=origins.S3BucketOrigin.with_origin_access_control(self.site_bucket),
                viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
                cache_policy=cloudfront.CachePolicy.CACHING_OPTIMIZED,
                compress=True
            ),
            minimum_protocol_version=cloudfront.SecurityPolicyProtocol.TLS_V1_2_2021,
            error_responses=[
                cloudfront.ErrorResponse(http_status=404, response_http_status=404, response_page_path="/404.html")
            ]
        )

        # =================================================================
        # 3. DNS MANAGEMENT (Route53)
        # =================================================================
        for index, name in enumerate(domain_names):
            # Alias records pointing to the CloudFront Distribution
            route53.ARecord(self, f"AliasRecord{index}",
                zone=hosted_zone,
                record_name=name,
                target=route53.RecordTarget.from_alias(targets.CloudFrontTarget(self.distribution))
            )
            route53.AaaaRecord(self, f"AliasRecordIPv6{index}",
                zone=hosted_zone,
                record_name=name,
                target=route53.RecordTarget.from_alias(targets.CloudFrontTarget(self.distribution))
            )

        # =================================================================
        # 4. OUTPUTS
        # =================================================================
        CfnOutput(self, "CloudFrontDomain", value=self.distribution.distribution_domain_name)
        CfnOutput(self, "DistributionId", value=self.distribution.distribution_id)
        CfnOutput(self, "SiteBucketName", value=self.site_bucket.bucket_name)
