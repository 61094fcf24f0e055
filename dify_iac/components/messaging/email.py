"""
SES Email Component for Dify's outgoing mail (invitations, password resets).

Resources:
1. Domain identity for domain_name, verified through Route 53 (TXT record).
2. Easy DKIM: three CNAME records signed by SES.
3. SMTP credentials: IAM user allowed ses:SendRawEmail, whose access key
   yields the SMTP password (ses_smtp_password_v4).
4. Secret <prefix>/smtp/credentials holding {"username", "password"}.

Dify talks plain SMTP with STARTTLS to email-smtp.<region>.amazonaws.com:587.
"""

import json
from dataclasses import dataclass

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import SesEmail
from dify_iac.configs.constants import NAME_MAX_LENGTHS
from dify_iac.utils.naming import ResourceNamer
from dify_iac.utils.tags import create_tags

SMTP_PORT = 587
DKIM_RECORD_COUNT = 3


def smtp_endpoint(region: str) -> str:
    return f"email-smtp.{region}.amazonaws.com"


@dataclass
class EmailOutputs:
    """Output values from SES email component."""
    smtp_server: pulumi.Output[str]
    smtp_port: int
    sender_address: str
    credentials_secret_arn: pulumi.Output[str]


class EmailComponent(pulumi.ComponentResource):
    """
    SES domain identity with DKIM and SMTP credentials for Dify.
    """

    def __init__(
        self,
        name: str,
        environment: str,
        namer: ResourceNamer,
        email: SesEmail,
        region: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        super().__init__("custom:messaging:Email", name, None, opts)

        child_opts = pulumi.ResourceOptions(parent=self)
        zone = aws.route53.get_zone_output(name=email.domain_name, opts=pulumi.InvokeOptions(parent=self))

        self.identity = aws.ses.DomainIdentity(
            f"{name}-identity",
            domain=email.domain_name,
            opts=child_opts,
        )

        verification_record = aws.route53.Record(
            f"{name}-verification",
            zone_id=zone.zone_id,
            name=f"_amazonses.{email.domain_name}",
            type="TXT",
            ttl=600,
            records=[self.identity.verification_token],
            opts=child_opts,
        )

        aws.ses.DomainIdentityVerification(
            f"{name}-identity-verification",
            domain=self.identity.domain,
            opts=pulumi.ResourceOptions(parent=self, depends_on=[verification_record]),
        )

        dkim = aws.ses.DomainDkim(
            f"{name}-dkim",
            domain=self.identity.domain,
            opts=child_opts,
        )

        for index in range(DKIM_RECORD_COUNT):
            token = dkim.dkim_tokens[index]
            aws.route53.Record(
                f"{name}-dkim-{index}",
                zone_id=zone.zone_id,
                name=token.apply(lambda value: f"{value}._domainkey.{email.domain_name}"),
                type="CNAME",
                ttl=600,
                records=[token.apply(lambda value: f"{value}.dkim.amazonses.com")],
                opts=child_opts,
            )

        self.smtp_user = aws.iam.User(
            f"{name}-smtp-user",
            name=namer.name("smtp", NAME_MAX_LENGTHS["iam_role"]),
            tags=create_tags(environment, f"{name}-smtp-user"),
            opts=child_opts,
        )

        aws.iam.UserPolicy(
            f"{name}-smtp-policy",
            user=self.smtp_user.name,
            policy=self.identity.arn.apply(lambda arn: json.dumps({
                "Version": "2012-10-17",
                "Statement": [{
                    "Effect": "Allow",
                    "Action": "ses:SendRawEmail",
                    "Resource": [arn],
                }],
            })),
            opts=child_opts,
        )

        access_key = aws.iam.AccessKey(
            f"{name}-smtp-access-key",
            user=self.smtp_user.name,
            opts=child_opts,
        )

        self.credentials = aws.secretsmanager.Secret(
            f"{name}-smtp-credentials",
            name=namer.secret_name("smtp", "credentials"),
            description="SES SMTP credentials for Dify",
            recovery_window_in_days=0,
            tags=create_tags(environment, f"{name}-smtp-credentials"),
            opts=child_opts,
        )

        aws.secretsmanager.SecretVersion(
            f"{name}-smtp-credentials-version",
            secret_id=self.credentials.id,
            secret_string=pulumi.Output.json_dumps({
                "username": access_key.id,
                "password": access_key.ses_smtp_password_v4,
            }),
            opts=child_opts,
        )

        self.smtp_server = pulumi.Output.from_input(region).apply(smtp_endpoint)
        self.sender_address = f"no-reply@{email.domain_name}"

        self.register_outputs({
            "smtp_server": self.smtp_server,
            "sender_address": self.sender_address,
            "credentials_secret_arn": self.credentials.arn,
        })

    def get_outputs(self) -> EmailOutputs:
        """Get SES email output values."""
        return EmailOutputs(
            smtp_server=self.smtp_server,
            smtp_port=SMTP_PORT,
            sender_address=self.sender_address,
            credentials_secret_arn=self.credentials.arn,
        )
