"""Handle -> DID -> PDS endpoint resolution and identity history metrics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional
from urllib.parse import quote, unquote

import requests

from skyscore.config import DEFAULT_HANDLE_DOMAIN
from skyscore.errors import EndpointNotFoundError, HttpError, ResolutionError

from .context import Identity, RunContext
from .records import parse_timestamp

_LOGGER = logging.getLogger("skyscore.identity")

PDS_SERVICE_TYPE = "AtprotoPersonalDataServer"
SUPPORTED_DID_PREFIXES = ("did:plc:", "did:web:")


@dataclass(frozen=True, slots=True)
class IdentityMetrics:
    plc_operations: int = 0
    rotation_keys: int = 0
    active_akas: int = 0
    total_akas: int = 0
    total_bsky_akas: int = 0
    total_custom_akas: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "plcOperations": self.plc_operations,
            "rotationKeys": self.rotation_keys,
            "activeAkas": self.active_akas,
            "totalAkas": self.total_akas,
            "totalBskyAkas": self.total_bsky_akas,
            "totalCustomAkas": self.total_custom_akas,
        }


# did:web identities have no PLC history; these stand in for the audit log.
DID_WEB_DEFAULT_METRICS = IdentityMetrics(
    plc_operations=0,
    rotation_keys=0,
    active_akas=1,
    total_akas=1,
    total_bsky_akas=0,
    total_custom_akas=1,
)


def normalize_actor(raw: str) -> str:
    return (raw or "").strip().lstrip("@").strip().lower()


def is_did(value: str) -> bool:
    return value.startswith(SUPPORTED_DID_PREFIXES)


def resolve_handle_to_did(ctx: RunContext, handle: str) -> str:
    url = ctx.public_url("com.atproto.identity.resolveHandle", handle=handle)
    try:
        data = ctx.get_json(url)
    except HttpError as exc:
        raise ResolutionError(f"Could not resolve handle {handle!r} to DID (HTTP {exc.status}).") from exc
    did = data.get("did") if isinstance(data, Mapping) else None
    if not isinstance(did, str) or not did.startswith("did:"):
        raise ResolutionError(f"Could not resolve handle {handle!r} to DID.")
    return did


def did_document_url(ctx: RunContext, did: str) -> str:
    if did.startswith("did:web:"):
        domain = unquote(did[len("did:web:"):])
        if not domain:
            raise EndpointNotFoundError(f"Malformed did:web identifier {did!r}.")
        return f"https://{domain}/.well-known/did.json"
    if did.startswith("did:plc:"):
        return f"{ctx.config.plc_directory}/{quote(did, safe=':')}"
    raise EndpointNotFoundError(f"Unsupported DID method for {did!r}.")


def fetch_did_document(ctx: RunContext, did: str) -> Mapping[str, Any]:
    data = ctx.get_json(did_document_url(ctx, did))
    if not isinstance(data, Mapping):
        raise EndpointNotFoundError(f"DID document for {did!r} is not an object.")
    return data


def get_service_endpoint_for_did(ctx: RunContext, did: str) -> str:
    document = fetch_did_document(ctx, did)
    services = document.get("service")
    if not isinstance(services, list):
        raise EndpointNotFoundError(f"Could not determine service endpoint for {did!r}.")
    entries = [svc for svc in services if isinstance(svc, Mapping) and svc.get("serviceEndpoint")]
    for svc in entries:
        if svc.get("type") == PDS_SERVICE_TYPE:
            return str(svc["serviceEndpoint"]).rstrip("/")
    if did.startswith("did:web:") and entries:
        return str(entries[0]["serviceEndpoint"]).rstrip("/")
    raise EndpointNotFoundError(f"Could not determine service endpoint for {did!r}.")


def handle_from_document(document: Mapping[str, Any]) -> Optional[str]:
    for alias in document.get("alsoKnownAs") or []:
        if isinstance(alias, str) and alias.startswith("at://"):
            return alias[len("at://"):]
    return None


def resolve_identity(ctx: RunContext, actor: str) -> Identity:
    """Resolve a handle (or a DID) to a full :class:`Identity`.

    Raises ``ResolutionError`` / ``EndpointNotFoundError``; both are fatal for
    the run.
    """
    actor = normalize_actor(actor)
    if not actor:
        raise ResolutionError("Handle is not provided.")
    if is_did(actor):
        did = actor
        handle = handle_from_document(fetch_did_document(ctx, did)) or did
    elif actor.startswith("did:"):
        raise EndpointNotFoundError(f"Unsupported DID method for {actor!r}.")
    else:
        handle = actor
        did = resolve_handle_to_did(ctx, handle)
    endpoint = get_service_endpoint_for_did(ctx, did)
    _LOGGER.info("Resolved %s -> %s @ %s", handle, did, endpoint, extra={"handle": handle, "did": did})
    return Identity(handle=handle, did=did, service_endpoint=endpoint)


def _audit_entries(raw: Any) -> List[Mapping[str, Any]]:
    if isinstance(raw, Mapping):
        raw = list(raw.values())
    if not isinstance(raw, list):
        return []
    return [entry for entry in raw if isinstance(entry, Mapping)]


def _audit_sort_key(entry: Mapping[str, Any]) -> tuple:
    stamp = parse_timestamp(entry.get("createdAt"))
    return (stamp is not None, stamp.timestamp() if stamp else 0.0)


def metrics_from_audit_log(raw: Any) -> IdentityMetrics:
    entries = _audit_entries(raw)
    if not entries:
        return IdentityMetrics()
    entries.sort(key=_audit_sort_key)
    latest = entries[-1].get("operation") or {}
    rotation_keys = latest.get("rotationKeys") if isinstance(latest, Mapping) else None
    active = latest.get("alsoKnownAs") if isinstance(latest, Mapping) else None

    aliases: dict[str, None] = {}
    for entry in entries:
        operation = entry.get("operation")
        if not isinstance(operation, Mapping):
            continue
        for alias in operation.get("alsoKnownAs") or []:
            if isinstance(alias, str):
                aliases.setdefault(alias, None)
    total = len(aliases)
    bsky = sum(1 for alias in aliases if DEFAULT_HANDLE_DOMAIN in alias)
    return IdentityMetrics(
        plc_operations=len(entries),
        rotation_keys=len(rotation_keys) if isinstance(rotation_keys, list) else 0,
        active_akas=len(active) if isinstance(active, list) else 0,
        total_akas=total,
        total_bsky_akas=bsky,
        total_custom_akas=total - bsky,
    )


def fetch_identity_metrics(ctx: RunContext) -> IdentityMetrics:
    """PLC audit log metrics; did:web identities get fixed defaults."""
    identity = ctx.require_identity()
    if identity.did_method == "web":
        return DID_WEB_DEFAULT_METRICS
    url = f"{ctx.config.plc_directory}/{quote(identity.did, safe=':')}/log/audit"
    try:
        raw = ctx.get_json(url)
    except (HttpError, requests.RequestException, ValueError) as exc:
        _LOGGER.warning("Audit log for %s unavailable: %s", identity.did, exc, extra={"did": identity.did})
        return IdentityMetrics()
    return metrics_from_audit_log(raw)
