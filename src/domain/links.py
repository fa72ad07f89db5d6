"""
Outbound links - closed set of pages an email can point at.
"""

from enum import Enum
from urllib.parse import urlencode


class View(Enum):
    """Pages reachable from a registration email, mapped to their paths."""

    CONFIRM = "/v1/registrations/{record_id}/confirm"
    EDIT = "/v1/registrations/{record_id}/edit"
    ADMIN_LIST = "/v1/admin/registrations"

    def url(self, base_url: str, **params: object) -> str:
        path = self.value.format(**params)
        query = {k: v for k, v in params.items() if "{" + k + "}" not in self.value}
        url = base_url.rstrip("/") + path
        if query:
            url += "?" + urlencode(query)
        return url
