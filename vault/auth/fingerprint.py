"""Client fingerprint: the (user agent, IP) pair a session is bound to."""

from collections.abc import Collection
from dataclasses import dataclass

from starlette.requests import Request

from vault.config import settings

# Column sizes of sessions.user_agent and sessions.ip
USER_AGENT_MAX_LENGTH = 512
IP_MAX_LENGTH = 45


@dataclass(frozen=True)
class Fingerprint:
    user_agent: str
    ip: str


def get_client_ip(request: Request, trusted_proxies: Collection[str] | None = None) -> str:
    """Return the client address.

    ``X-Forwarded-For`` is only honoured when the connecting peer is a trusted
    proxy. The chain is walked right to left, skipping trusted hops, and the
    first untrusted address is the client.
    """
    if trusted_proxies is None:
        trusted_proxies = settings.trusted_proxies
    if request.client is None:
        return "unknown"

    peer = request.client.host
    if peer not in trusted_proxies:
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if not forwarded_for:
        return peer
    hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return hops[0] if hops else peer


def get_fingerprint(request: Request) -> Fingerprint:
    # Truncated to the stored size so the checked value matches the stored one
    return Fingerprint(
        user_agent=request.headers.get("User-Agent", "")[:USER_AGENT_MAX_LENGTH],
        ip=get_client_ip(request),
    )
