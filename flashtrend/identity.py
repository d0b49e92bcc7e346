"""
Caller identity as supplied by the upstream identity provider.

The provider (an authenticating gateway) forwards the principal of a
logged-in caller in ``settings.IDENTITY_HEADER``.  A missing or blank
header means the caller is anonymous.
"""
from dataclasses import dataclass
from typing import Mapping

from flashtrend.config import settings

ANONYMOUS_NAMESPACE = "anonymous"


@dataclass(frozen=True)
class Identity:
    principal: str

    @property
    def namespace(self) -> str:
        return f"principal:{self.principal}"


def identity_from_headers(headers: Mapping[str, str]) -> Identity | None:
    principal = (headers.get(settings.IDENTITY_HEADER) or "").strip()
    return Identity(principal) if principal else None


def namespace_for(identity: Identity | None) -> str:
    return identity.namespace if identity is not None else ANONYMOUS_NAMESPACE
