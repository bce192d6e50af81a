"""An adapter wrapper that randomly drops datagrams in either direction."""

from __future__ import annotations

import random
import secrets
from typing import Any, Optional, Protocol

from minnow.tcp_config import FdAdapterConfig
from minnow.tcp_message import TCPMessage

_SEED_BITS = 32 * 1024


class _DatagramAdapter(Protocol):
    config: FdAdapterConfig
    listening: bool

    def read(self) -> Optional[TCPMessage]: ...

    def write(self, msg: TCPMessage) -> None: ...

    def tick(self, ms_since_last_tick: int) -> None: ...

    def fd(self) -> Any: ...


class _BitSource(Protocol):
    def getrandbits(self, k: int) -> int: ...


def get_random_engine() -> random.Random:
    """A fast pseudo-random generator seeded from system entropy."""
    return random.Random(secrets.randbits(_SEED_BITS))


class LossyFdAdapter:
    """Passes reads and writes through to an adapter, dropping some at random.

    The loss rates in the adapter's configuration are out of 65536:
    ``loss_rate_dn`` for reads, ``loss_rate_up`` for writes.
    """

    def __init__(self, adapter: _DatagramAdapter, rng: Optional[_BitSource] = None) -> None:
        self._adapter = adapter
        self._rand = rng if rng is not None else get_random_engine()

    def _should_drop(self, uplink: bool) -> bool:
        cfg = self._adapter.config
        loss = cfg.loss_rate_up if uplink else cfg.loss_rate_dn
        return loss != 0 and self._rand.getrandbits(16) < loss

    def fd(self) -> Any:
        return self._adapter.fd()

    def read(self) -> Optional[TCPMessage]:
        """Read from the adapter; None if nothing was read or the message was dropped."""
        message = self._adapter.read()
        if self._should_drop(False):
            return None
        return message

    def write(self, msg: TCPMessage) -> None:
        """Write through the adapter unless the message is dropped."""
        if self._should_drop(True):
            return
        self._adapter.write(msg)

    def set_listening(self, listening: bool) -> None:
        self._adapter.listening = listening

    def config(self) -> FdAdapterConfig:
        """The adapter's configuration (mutable)."""
        return self._adapter.config

    def tick(self, ms_since_last_tick: int) -> None:
        self._adapter.tick(ms_since_last_tick)