"""Typed adapter around the opaque peer-to-peer module."""

import json
import logging
from collections.abc import Callable
from typing import Protocol

from pydantic import ValidationError

from p2plauncher.errors import MalformedPayloadError
from p2plauncher.models import ConnectResult, PeerInfo

log = logging.getLogger(__name__)

MessageCallback = Callable[[str], None]


class PeerModule(Protocol):
    """What the host needs from the P2P networking module."""

    def get_peer_info(self) -> str:
        """Return JSON: {"id": str, "addresses": [str], "connected": [str]}."""
        ...

    def connect_to_peer(self, address: str) -> str:
        """Connect to address and return a status text (errors are embedded in it)."""
        ...

    def on_message(self, callback: MessageCallback) -> None:
        """Register callback for incoming game messages."""
        ...


def parse_peer_info(raw: str) -> PeerInfo:
    """Parse the JSON text returned by get_peer_info()."""
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedPayloadError(f"peer info is not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedPayloadError("peer info must be a JSON object")
    # The module reports "no connections" as null rather than [].
    if payload.get("connected") is None:
        payload["connected"] = []
    try:
        return PeerInfo.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayloadError(f"invalid peer info: {e.error_count()} error(s)") from e


class PeerClient:
    """Calls into a PeerModule and turns its loose payloads into models."""

    def __init__(self, module: PeerModule) -> None:
        self._module = module
        self._subscribers: list[MessageCallback] = []
        self._module.on_message(self._dispatch)

    def peer_info(self) -> PeerInfo:
        info = parse_peer_info(self._module.get_peer_info())
        log.debug("peer %s: %d address(es), %d connected", info.id, len(info.addresses), len(info.connected))
        return info

    def connect(self, address: str) -> ConnectResult:
        address = address.strip()
        if not address:
            return ConnectResult(ok=False, message="No peer address given")
        log.info("connecting to peer %s", address)
        message = self._module.connect_to_peer(address)
        ok = not message.lstrip().lower().startswith("error")
        if not ok:
            log.warning("connection to %s failed: %s", address, message)
        return ConnectResult(ok=ok, message=message)

    def subscribe(self, callback: MessageCallback) -> None:
        self._subscribers.append(callback)

    def _dispatch(self, message: str) -> None:
        log.info("game message received: %s", message)
        for callback in list(self._subscribers):
            try:
                callback(message)
            except Exception:
                log.exception("message subscriber %r failed", callback)
