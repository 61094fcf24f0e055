"""
Messaging components for outgoing mail.

Components:
- EmailComponent: SES domain identity, DKIM and SMTP credentials
"""

from dify_iac.components.messaging.email import EmailComponent, EmailOutputs

__all__ = [
    "EmailComponent",
    "EmailOutputs",
]
