from __future__ import annotations

from typing import List, Tuple


class AuthFailure(Exception):
    """A login attempt did not produce a verified account.

    Every subclass is reported to the caller with the same generic message;
    the subclass only matters for server-side logs.
    """

    public_message = "Invalid credentials"


class InvalidCredentials(AuthFailure):
    """No credential table holds a matching email/password pair."""


class StoreUnavailable(AuthFailure):
    """At least one credential table could not be queried and none matched.

    `faults` lists (table, error text) for each lookup that failed.
    """

    def __init__(self, faults: List[Tuple[str, str]]):
        self.faults = list(faults)
        tables = ", ".join(t for t, _ in self.faults)
        super().__init__(f"credential store unavailable: {tables}")
