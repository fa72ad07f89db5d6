"""
Outbound message texts.

Plain-text bodies for applicant emails and tenant-admin notifications.
Reasons typed by reviewers are inserted verbatim.
"""

from .ports import NotificationType

CONFIRMATION_SUBJECT = "{site}: Account confirmation."
CONFIRMATION_BODY = """Hi {first_name},

We've received a request for a new account at '{site}' using your email address.

To verify your email, please visit the following web address within the next {hours} hours:

{link}

Please be aware that your access to the website is pending approval from an administrator.

{site}"""

REJECTION_SUBJECT = "{site}: Account rejection."
REJECTION_BODY = """Hi {first_name},

Your registration at '{site}' has been rejected.

Reason for rejection:
{reason}

{site}"""

EDIT_REQUEST_SUBJECT = "{site}: Update your application."
EDIT_REQUEST_BODY = """Hi {first_name},

An administrator at '{site}' has asked you to update your registration application.

Reason:
{reason}

To edit your application, please visit the following web address:

{link}

{site}"""

APPROVAL_SUBJECT = "{site}: Account approved."
APPROVAL_BODY = """Hi {first_name},

Your registration at '{site}' has been approved. You will receive a separate email with your login details.

{site}"""

TENANT_NOTICES = {
    NotificationType.CONFIRMATION: (
        "New user verified",
        "A user in your tenant, for which you are the administrator, "
        "has successfully verified their email address.",
    ),
    NotificationType.UPDATE: (
        "User updated their registration application",
        "A user in your tenant, for which you are the administrator, "
        "has updated their registration application.",
    ),
}
