# minnow

Building blocks for a TCP/IP stack that runs in user space. The package
provides wire formats, checksums, file-descriptor and socket wrappers, TUN/TAP
devices, a poll-based event loop, and adapters that carry TCP messages inside
IPv4 datagrams.

## What is in it

| Module | Contents |
| --- | --- |
| `minnow.parser` | `Parser` and `Serializer`: big-endian integers and byte strings over a list of buffers |
| `minnow.checksum` | `InternetChecksum`: the one's-complement Internet checksum |
| `minnow.ethernet` | `EthernetHeader`, `EthernetFrame`, `format_ethernet_address`, `ETHERNET_BROADCAST` |
| `minnow.ipv4` | `IPv4Header` (options are skipped when parsing), `IPv4Datagram` |
| `minnow.arp` | `ARPMessage` for Ethernet/IPv4 requests and replies |
| `minnow.tcp_message` | `TCPSenderMessage`, `TCPReceiverMessage`, `TCPMessage`, `UserDatagramInfo`, `TCPSegment` |
| `minnow.helpers` | `parse`, `serialize`, `concat`, `pretty_print`, `summary`, `clone` |
| `minnow.address` | `Address`: `resolve`, `from_ip`, `from_ipv4_numeric`, `ip_port`, `ip`, `port`, `ipv4_numeric`, `to_string` |
| `minnow.errors` | `TaggedError`, `UnixError`, `check_system_call`, `not_null` |
| `minnow.debug` | `debug`, `debug_str`, `set_debug_handler`, `reset_debug_handler` |
| `minnow.file_descriptor` | `FileDescriptor`: a shared handle with read/write counters and EOF tracking |
| `minnow.sockets` | `Socket`, `DatagramSocket`, `UDPSocket`, `TCPSocket`, `PacketSocket`, `RawSocket`, `LocalStreamSocket`, `LocalDatagramSocket` |
| `minnow.tun` | `TunTapFD`, `TunFD`, `TapFD` (Linux only) |
| `minnow.eventloop` | `EventLoop`, `Direction`, `Result`, `RuleHandle` |
| `minnow.tcp_config` | `TCPConfig`, `FdAdapterConfig` |
| `minnow.tcp_over_ip` | `FdAdapterBase`, `TCPOverIPv4Adapter` |
| `minnow.tuntap_adapter` | `TCPOverIPv4OverTunFdAdapter` |
| `minnow.lossy` | `LossyFdAdapter`, `get_random_engine` |

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Parsing and serialising

```python
from minnow.ipv4 import IPv4Datagram
from minnow.helpers import serialize, parse, concat

dgram = IPv4Datagram()
dgram.header.total_length = 20 + 5
dgram.payload = [b"hello"]
dgram.header.compute_checksum()

wire = serialize(dgram)          # a list of bytes buffers

copy = IPv4Datagram()
assert parse(copy, [concat(wire)])
assert concat(copy.payload) == b"hello"
```

Parsing never raises on malformed or short input: `parse` returns `False`,
and `Parser.has_error()` reports the same condition. An IPv4 header with a
wrong version, a header length below 5 or a bad checksum fails to parse, as
does a TCP segment whose checksum (including the IPv4 pseudo-header, from
`IPv4Header.pseudo_checksum()`) is wrong. Serialising a message whose fields
are inconsistent, such as an IPv4 header with a version other than 4 or an
unsupported `ARPMessage`, raises `ValueError`.

Sequence and acknowledgment numbers in `TCPSenderMessage` and
`TCPReceiverMessage` are raw 32-bit integers; `ackno` is `None` when the ACK
flag is not set.

## The event loop

`EventLoop` serves at most one rule per call to `wait_next_event`. Plain
rules (`add_rule`) run their callback while their interest predicate holds;
descriptor rules (`add_fd_rule`) run when the descriptor is readable
(`Direction.IN`) or writable (`Direction.OUT`). A rule whose callback neither
reads nor writes its descriptor while still interested raises `RuntimeError`
as a busy wait.

```python
import socket
from minnow.eventloop import EventLoop, Direction, Result
from minnow.file_descriptor import FileDescriptor

ours, theirs = socket.socketpair()
reader = FileDescriptor(ours.detach())
theirs.send(b"ping")
theirs.close()

received = []
loop = EventLoop()
loop.add_fd_rule("read", reader, Direction.IN, lambda: received.append(reader.read()))
while loop.wait_next_event(100) is Result.SUCCESS:
    pass

assert b"".join(received) == b"ping"
```

The rule ends by itself once the descriptor reaches EOF, and the loop then
returns `Result.EXIT`.

## TCP over IPv4

`TCPOverIPv4Adapter.wrap_tcp_in_ip` places a `TCPMessage` in an
`IPv4Datagram`, filling in ports, lengths and both checksums from its
`FdAdapterConfig`. `unwrap_tcp_in_ip` returns the message inside a datagram,
or `None` when the datagram is invalid or belongs to another connection.
While the adapter is listening, a SYN without RST fixes the peer's address
and port and ends listening.

`TCPOverIPv4OverTunFdAdapter` reads and writes such datagrams on a
`FileDescriptor`, normally a `TunFD`. `LossyFdAdapter` wraps an adapter and
drops reads and writes at random, at the rates `loss_rate_dn` and
`loss_rate_up` in its configuration (out of 65536).

## What this package does not do

- It has no TCP state machine: there is no sender, receiver, reassembler or
  byte stream, so nothing here retransmits, acknowledges or reorders data by
  itself. `TCPMessage` and `TCPSegment` only describe what goes on the wire.
- It has no network interface that answers or sends ARP requests; `ARPMessage`
  only parses and serialises them.
- It installs no command-line programs.

Opening a TUN or TAP device needs Linux, and the device must already exist
(for example, created with `ip tuntap add mode tun user <user> name <devname>`).