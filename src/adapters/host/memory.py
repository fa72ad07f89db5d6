"""
In-memory host platform adapter.

Implements the AccountProvisioner, TenantDirectory and PolicyRegistry
ports for demos and tests. A real deployment points these ports at the
learning platform's user store, tenant manager and policy tool.

Admin credentials are stored as bcrypt hashes. authenticate() always runs
one bcrypt comparison, against a dummy hash for unknown usernames, so
response time does not reveal which usernames exist.
"""

import logging
import threading
from dataclasses import dataclass

import bcrypt

from src.domain.exceptions import AccountProvisioningFailed, TenantNotFound
from src.domain.records import Actor, Policy, RegistrationRecord

logger = logging.getLogger(__name__)

# Hash of "dummy_password_for_timing_safety", compared when the username is unknown.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10))


@dataclass
class HostAccount:
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    password_hash: bytes | None = None
    is_site_admin: bool = False


class InMemoryHostPlatform:
    """
    Implements the host-platform ports with plain dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        tenants: dict[int, str] | None = None,
        policies: list[Policy] | None = None,
        bcrypt_rounds: int = 10,
    ) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[int, HostAccount] = {}
        self._next_id = 1
        self._tenants = dict(tenants or {})
        self._admins: dict[int, set[int]] = {tenant_id: set() for tenant_id in self._tenants}
        self._members: dict[int, set[int]] = {tenant_id: set() for tenant_id in self._tenants}
        self._policies = list(policies or [])
        self._bcrypt_rounds = bcrypt_rounds

    def add_admin(
        self,
        username: str,
        password: str,
        tenant_id: int | None = None,
        site_admin: bool = False,
    ) -> int:
        """Create an admin account; tenant_id makes it that tenant's admin."""
        if tenant_id is not None and tenant_id not in self._tenants:
            raise TenantNotFound(tenant_id)

        password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt(self._bcrypt_rounds))
        with self._lock:
            account = self._new_account(username, f"{username}@localhost", username, "")
            account.password_hash = password_hash
            account.is_site_admin = site_admin
            if tenant_id is not None:
                self._admins[tenant_id].add(account.id)
                self._members[tenant_id].add(account.id)
        return account.id

    def account_exists(self, email: str) -> bool:
        email = email.strip().lower()
        with self._lock:
            return any(account.email == email for account in self._accounts.values())

    def account_id_for(self, email: str) -> int | None:
        email = email.strip().lower()
        with self._lock:
            for account in self._accounts.values():
                if account.email == email:
                    return account.id
        return None

    def create_account(self, record: RegistrationRecord) -> int:
        """Create a login from a registration; username is the lowercased email."""
        email = record.email.strip().lower()
        with self._lock:
            if any(account.email == email for account in self._accounts.values()):
                raise AccountProvisioningFailed(f"Account already exists for {email}")
            account = self._new_account(email, email, record.first_name, record.last_name)

        logger.info("Created account %s for %s", account.id, email)
        return account.id

    def remove_account(self, account_id: int) -> None:
        with self._lock:
            self._accounts.pop(account_id, None)
            for members in self._members.values():
                members.discard(account_id)
            for admins in self._admins.values():
                admins.discard(account_id)
        logger.info("Removed account %s", account_id)

    def get_account(self, account_id: int) -> HostAccount | None:
        with self._lock:
            return self._accounts.get(account_id)

    def tenant_exists(self, tenant_id: int) -> bool:
        return tenant_id in self._tenants

    def tenant_name(self, tenant_id: int) -> str:
        return self._tenants.get(tenant_id, "")

    def list_tenant_admins(self, tenant_id: int) -> list[int]:
        with self._lock:
            return sorted(self._admins.get(tenant_id, set()))

    def is_tenant_admin(self, tenant_id: int, user_id: int) -> bool:
        with self._lock:
            return user_id in self._admins.get(tenant_id, set())

    def tenant_members(self, tenant_id: int) -> list[int]:
        with self._lock:
            return sorted(self._members.get(tenant_id, set()))

    def attach_account_to_tenant(self, account_id: int, tenant_id: int) -> None:
        if tenant_id not in self._tenants:
            raise TenantNotFound(tenant_id)
        with self._lock:
            self._members[tenant_id].add(account_id)

    def authenticate(self, username: str, password: str) -> Actor | None:
        with self._lock:
            account = next(
                (a for a in self._accounts.values() if a.username == username), None
            )

        stored_hash = (
            account.password_hash
            if account is not None and account.password_hash is not None
            else _DUMMY_BCRYPT_HASH
        )
        # Always run bcrypt so unknown usernames cost the same as wrong passwords
        password_valid = bcrypt.checkpw(password.encode(), stored_hash)

        if account is None or account.password_hash is None or not password_valid:
            return None
        return Actor(id=account.id, username=account.username, is_site_admin=account.is_site_admin)

    def list_current_policies(self) -> list[Policy]:
        return list(self._policies)

    def _new_account(self, username: str, email: str, first_name: str, last_name: str) -> HostAccount:
        account = HostAccount(
            id=self._next_id,
            username=username,
            email=email,
            first_name=first_name,
            last_name=last_name,
        )
        self._accounts[account.id] = account
        self._next_id += 1
        return account
