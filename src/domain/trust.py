"""
Trust evaluator - decides whether a confirmed email skips manual review.
"""

from collections.abc import Iterable


def parse_domain_list(text: str) -> list[str]:
    """Split a newline-delimited setting into trimmed, non-empty domains."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def is_trusted(email: str, domains: Iterable[str]) -> bool:
    """
    Check if the email's domain is one of the pre-approved domains.

    Matching is exact and case-sensitive against each trimmed entry.
    An address without a domain part is never trusted.
    """
    _, at, domain = email.partition("@")
    if not at or not domain:
        return False

    return domain in {entry.strip() for entry in domains if entry.strip()}
