"""Resolution of login identities per credential profile and worker.

Concurrent sessions logged in as the same application user race inside the
application's server-side session state, so each worker may carry its own
login pair. Variables, for profile ``dev`` and worker 2::

    DEV_LOGIN_USER_W2 / DEV_LOGIN_PASS_W2   worker override
    DEV_LOGIN_USER    / DEV_LOGIN_PASS      shared login
    DEV_BASIC_USER    / DEV_BASIC_PASS      HTTP Basic auth, always shared
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from pydantic import SecretStr

from checkout_flow_runner.config import CredentialPolicy
from checkout_flow_runner.errors import IncompleteCredentialsError
from checkout_flow_runner.models.base import Model
from checkout_flow_runner.models.case import DEFAULT_CREDENTIAL_PROFILE

log = logging.getLogger(__name__)

LOGIN_USER_PLACEHOLDER = "{{LOGIN_USER}}"
LOGIN_PASS_PLACEHOLDER = "{{LOGIN_PASS}}"


class Credentials(Model):
    """Resolved login identity for one attempt."""

    login_user: str = ""
    login_pass: SecretStr = SecretStr("")
    basic_user: str | None = None
    basic_pass: SecretStr | None = None

    @property
    def http_credentials(self) -> dict[str, str] | None:
        """HTTP Basic credentials for the browser context, when both are set."""
        if not self.basic_user or self.basic_pass is None:
            return None
        password = self.basic_pass.get_secret_value()
        if not password:
            return None
        return {"username": self.basic_user, "password": password}

    @property
    def masked_user(self) -> str:
        """Login user safe for log output."""
        if len(self.login_user) <= 2:
            return "*" * len(self.login_user)
        return self.login_user[:2] + "*" * (len(self.login_user) - 2)

    def substitute(self, value: str) -> str:
        """Replace the login placeholders in an action value."""
        return value.replace(LOGIN_USER_PLACEHOLDER, self.login_user).replace(
            LOGIN_PASS_PLACEHOLDER, self.login_pass.get_secret_value()
        )


@dataclass(frozen=True, kw_only=True)
class CredentialResolver:
    """Resolve credentials from a snapshot of the environment."""

    environ: Mapping[str, str] = field(repr=False)
    policy: CredentialPolicy = "fallback"

    def resolve(
        self, profile: str | None = None, worker_id: int | None = None
    ) -> Credentials:
        """Return the login identity for a profile, preferring worker overrides.

        Args:
            profile: Credential profile name (default "dev")
            worker_id: Worker number; enables the ``_W<n>`` override lookup

        Returns:
            Resolved credentials; missing shared values resolve to empty strings

        Raises:
            IncompleteCredentialsError: In strict policy, when only one half
                of a worker override pair is set

        """
        key = (profile or DEFAULT_CREDENTIAL_PROFILE).upper()
        basic_user = self.environ.get(f"{key}_BASIC_USER") or None
        basic_pass = self.environ.get(f"{key}_BASIC_PASS")

        login = self._worker_login(key, worker_id)
        if login is None:
            login = (
                self.environ.get(f"{key}_LOGIN_USER", ""),
                self.environ.get(f"{key}_LOGIN_PASS", ""),
            )

        return Credentials(
            login_user=login[0],
            login_pass=SecretStr(login[1]),
            basic_user=basic_user,
            basic_pass=SecretStr(basic_pass) if basic_pass else None,
        )

    def _worker_login(self, key: str, worker_id: int | None) -> tuple[str, str] | None:
        """Return the worker override pair if fully present."""
        if worker_id is None:
            return None

        user_var = f"{key}_LOGIN_USER_W{worker_id}"
        pass_var = f"{key}_LOGIN_PASS_W{worker_id}"
        user = self.environ.get(user_var)
        password = self.environ.get(pass_var)

        if user and password:
            return user, password

        if user or password:
            missing = pass_var if user else user_var
            if self.policy == "strict":
                raise IncompleteCredentialsError(
                    f"Worker {worker_id} override for profile {key} is incomplete: "
                    f"{missing} is not set"
                )
            log.warning(
                "Incomplete override for worker %d (%s not set), "
                "falling back to shared %s credentials",
                worker_id,
                missing,
                key,
            )
        return None
